"""테스트용 가짜 모델 백엔드/검색 클라이언트"""

import json
import os
import sys
from unittest.mock import AsyncMock, MagicMock

# 프로젝트 루트 경로 추가 (모듈 import를 위해)
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from evidentia.shared.llm_client import ModelGateway
from evidentia.shared.schemas import SearchResult


def make_completion(content):
    """chat.completions.create 응답 형태의 Mock"""
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def prompt_of(params):
    content = params["messages"][0]["content"]
    if isinstance(content, list):
        return content[0]["text"]
    return content


def make_gateway(router):
    """
    프롬프트 내용으로 응답을 고르는 가짜 게이트웨이를 만듭니다.

    Args:
        router: 프롬프트 문자열을 받아 dict/str 응답 또는 발생시킬 예외를 반환하는 함수.

    Returns:
        ModelGateway: 재시도 대기가 AsyncMock으로 대체된 게이트웨이.
    """
    client = MagicMock()

    async def create(**params):
        result = router(prompt_of(params))
        if isinstance(result, BaseException):
            raise result
        return make_completion(result if isinstance(result, str) else json.dumps(result))

    client.chat.completions.create = AsyncMock(side_effect=create)
    gateway = ModelGateway(client)
    gateway.sleep = AsyncMock()
    return gateway


def make_search_client(configured=True, results=None):
    search = MagicMock()
    search.is_configured = configured
    if results is None:
        results = [SearchResult(title="Result", link="https://news.example.org/a", snippet="snippet", domain="news.example.org")]
    search.search = AsyncMock(return_value=results if configured else None)
    return search


def count_calls(gateway, marker):
    """프롬프트에 marker가 포함된 모델 호출 수"""
    return sum(
        1 for call in gateway.client.chat.completions.create.call_args_list
        if marker in prompt_of(call.kwargs)
    )


CLAIMS_MARKER = "Extract atomic, checkable claims"
MANIPULATION_MARKER = "signs of AI generation"
VERIFICATION_MARKER = "verification analyst"
SYNTHESIS_MARKER = "You are the Truth Engine"
IMAGE_MARKER = "Analyze the attached image"
