"""오디오 전사 (오디오 파일 및 영상에서 추출한 오디오)"""

import logging
import os
from typing import Optional

from ..config import Config
from ..evidence_module.extractors import read_file_base64
from ..resources.prompts import AUDIO_TRANSCRIPTION_PROMPT
from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.schemas import ContentPart, NormalizedEvidence

logger = logging.getLogger(__name__)


class AudioTranscriber:
    """오디오 모델로 전사본을 요청합니다. 실패 시 None을 반환합니다."""

    def __init__(self, gateway: ModelGateway, model: Optional[str] = None):
        self.gateway = gateway
        self.model = model if model else Config.LLM_AUDIO_MODEL
        self.max_chars = Config.TRANSCRIPT_MAX_CHARS

    @log_execution("media", "audio_transcription")
    async def transcribe(self, item: NormalizedEvidence) -> Optional[str]:
        """
        증거의 오디오를 전사합니다.

        Args:
            item (NormalizedEvidence): audio_path가 있는 오디오/영상 증거.

        Returns:
            Optional[str]: 전사본 (최대 Config.TRANSCRIPT_MAX_CHARS자). 오디오가 없거나 실패하면 None.
        """
        if not item.audio_path or not os.path.exists(item.audio_path):
            return None

        try:
            mime_type = "audio/mpeg" if item.audio_path.lower().endswith(".mp3") else "audio/wav"
            part = ContentPart(mime_type=mime_type, base64_data=read_file_base64(item.audio_path))

            result = await self.gateway.generate_json(AUDIO_TRANSCRIPTION_PROMPT, parts=[part], model=self.model)
            transcript = str(result.get("transcript") or "").strip() if isinstance(result, dict) else ""
            if not transcript:
                logger.warning(f"전사 결과 없음 ({item.filename})")
                return None

            logger.info(f"오디오 전사 완료 ({item.filename}): {len(transcript)}자")
            return transcript[:self.max_chars]
        except Exception as e:
            logger.error(f"오디오 전사 실패 ({item.filename}): {e}")
            return None

    @staticmethod
    def merge(item: NormalizedEvidence, transcript: str) -> None:
        label = "[Audio transcript extracted from video]" if item.type == "video" else "[Audio transcript]"
        item.text = f"{item.text}\n\n{label}\n{transcript}"
