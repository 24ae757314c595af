"""
모델 게이트웨이.
OpenAI 비동기 클라이언트 호출과 재시도 정책을 담당합니다.
"""

import asyncio
import logging
import json
import re
from typing import Dict, Any, Optional, List

from openai import AsyncOpenAI

from ..config import Config
from .errors import EmptyResponseError, ModelNotConfiguredError, get_error_status_code
from .schemas import ContentPart

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = (429, 503)
TRANSIENT_ERROR_PATTERN = re.compile(
    r"\b429\b|\b503\b|quota|rate limit|temporarily unavailable", re.IGNORECASE
)
RETRY_HINT_PATTERN = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

AUDIO_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}


def is_transient_error(error: BaseException) -> bool:
    """
    재시도 가능한 일시적 오류인지 판별합니다.

    빈 응답과 상태 코드(429, 503)를 먼저 확인하고, 없으면 메시지 패턴으로 판단합니다.
    """
    if isinstance(error, EmptyResponseError):
        return True
    if get_error_status_code(error) in TRANSIENT_STATUS_CODES:
        return True
    return bool(TRANSIENT_ERROR_PATTERN.search(str(error)))


def get_retry_hint_sec(error: BaseException) -> Optional[float]:
    """
    백엔드가 지정한 대기 시간을 추출합니다.

    Retry-After 헤더가 있으면 우선 사용하고, 없으면 에러 메시지의 "retry in Ns" 힌트를 사용합니다.

    Args:
        error (BaseException): 실패한 호출의 예외.

    Returns:
        Optional[float]: 대기 시간(초). 힌트가 없으면 None.
    """
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        value = headers.get("retry-after")
        if value is not None:
            try:
                return max(float(value), 0.0)
            except (TypeError, ValueError):
                logger.debug(f"Retry-After 헤더 해석 불가: {value}")

    match = RETRY_HINT_PATTERN.search(str(error))
    if match:
        return float(match.group(1))
    return None


def compute_retry_wait(error: BaseException, attempt: int) -> float:
    """재시도 대기 시간 (힌트 우선, 없으면 지수 백오프). 상한은 Config.LLM_RETRY_MAX_WAIT_SEC."""
    wait = get_retry_hint_sec(error)
    if wait is None:
        wait = Config.LLM_BACKOFF_BASE_SEC * (2 ** (attempt - 1))
    return min(wait, Config.LLM_RETRY_MAX_WAIT_SEC)


def parse_json_response(response_text: str) -> Any:
    """
    모델 응답에서 코드 펜스를 제거하고 JSON으로 파싱합니다.

    Raises:
        ValueError: JSON 파싱 실패 시 발생.
    """
    cleaned = CODE_FENCE_PATTERN.sub("", response_text.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON 응답 파싱 실패: {e}\n응답: {response_text[:500]}")
        raise ValueError(f"JSON 파싱 실패: {e}")


def to_message_part(part: ContentPart) -> Dict[str, Any]:
    """ContentPart를 chat completions 메시지 파트로 변환합니다."""
    if part.mime_type.startswith("audio/"):
        return {
            "type": "input_audio",
            "input_audio": {
                "data": part.base64_data,
                "format": AUDIO_FORMATS.get(part.mime_type, "wav"),
            },
        }
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{part.mime_type};base64,{part.base64_data}"},
    }


class ModelGateway:
    """
    모델 백엔드 단일 진입점.

    자격 증명이 없으면 client가 None이며, 모든 호출은 즉시 ModelNotConfiguredError를 발생시킵니다.
    일시적 오류(429/503, quota, rate limit)는 최대 Config.LLM_MAX_ATTEMPTS회까지 재시도합니다.
    """

    def __init__(self, client: Optional[AsyncOpenAI], model: Optional[str] = None):
        self.client = client
        self.model = model if model else Config.LLM_MODEL
        self.temperature = Config.LLM_TEMPERATURE
        self.max_tokens = Config.LLM_MAX_TOKENS
        self.max_attempts = Config.LLM_MAX_ATTEMPTS
        self.sleep = asyncio.sleep

    @classmethod
    def from_config(cls) -> "ModelGateway":
        """Config의 자격 증명으로 게이트웨이를 생성합니다. 키가 없으면 미설정 게이트웨이를 반환합니다."""
        if not Config.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY 미설정 - 데모 모드로 동작합니다")
            return cls(None)
        # 재시도는 게이트웨이가 직접 관리하므로 SDK 재시도는 끕니다
        client = AsyncOpenAI(api_key=Config.OPENAI_API_KEY, max_retries=0)
        logger.info(f"ModelGateway 초기화 완료 - 모델: {Config.LLM_MODEL}")
        return cls(client)

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        """
        단일 텍스트 프롬프트로 생성합니다.

        Args:
            prompt (str): 프롬프트.
            json_mode (bool): JSON 객체 응답 요청 여부.

        Returns:
            str: 모델 응답 텍스트 (비어 있지 않음).

        Raises:
            ModelNotConfiguredError: 자격 증명이 없는 경우.
            EmptyResponseError: 응답이 비어 있는 경우.
        """
        messages = [{"role": "user", "content": prompt}]
        return await self._complete_with_retry(messages, json_mode=json_mode)

    async def generate_text_with_parts(
        self,
        prompt: str,
        parts: List[ContentPart],
        json_mode: bool = False,
        model: Optional[str] = None
    ) -> str:
        """
        텍스트와 인라인 바이너리(이미지, 오디오)를 함께 보내 생성합니다.

        Args:
            prompt (str): 프롬프트.
            parts (List[ContentPart]): 첨부할 파트 목록 (프롬프트 뒤에 순서대로 배치).
            json_mode (bool): JSON 객체 응답 요청 여부.
            model (Optional[str]): 사용할 모델 (기본값: 게이트웨이 모델).

        Returns:
            str: 모델 응답 텍스트.
        """
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend(to_message_part(part) for part in parts)
        messages = [{"role": "user", "content": content}]
        return await self._complete_with_retry(messages, json_mode=json_mode, model=model)

    async def generate_json(
        self,
        prompt: str,
        parts: Optional[List[ContentPart]] = None,
        model: Optional[str] = None
    ) -> Any:
        """
        JSON 응답을 요청하고 파싱합니다.

        Raises:
            ValueError: JSON 파싱 실패 시 발생.
        """
        if parts:
            response_text = await self.generate_text_with_parts(prompt, parts, json_mode=True, model=model)
        else:
            response_text = await self.generate_text(prompt, json_mode=True)
        return parse_json_response(response_text)

    async def _complete_with_retry(
        self,
        messages: List[Dict[str, Any]],
        json_mode: bool = False,
        model: Optional[str] = None
    ) -> str:
        if self.client is None:
            raise ModelNotConfiguredError()

        attempt = 1
        while True:
            try:
                return await self._complete(messages, json_mode=json_mode, model=model)
            except Exception as e:
                if attempt >= self.max_attempts or not is_transient_error(e):
                    logger.error(f"모델 호출 실패 (시도 {attempt}/{self.max_attempts}): {e}")
                    raise
                wait = compute_retry_wait(e, attempt)
                logger.warning(
                    f"일시적 오류로 재시도 예정 (시도 {attempt}/{self.max_attempts}, {wait:.1f}초 대기): {e}"
                )
                await self.sleep(wait)
                attempt += 1

    async def _complete(
        self,
        messages: List[Dict[str, Any]],
        json_mode: bool = False,
        model: Optional[str] = None
    ) -> str:
        params = {
            "model": model if model else self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**params)

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EmptyResponseError()

        logger.debug(f"모델 응답: {content[:100]}...")
        return content
