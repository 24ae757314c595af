"""레드팀용 적대적 콘텐츠 생성 (adversarial 모드)"""

import logging

from ..shared.llm_client import ModelGateway
from ..shared.schemas import AdversarialContent
from ..resources.prompts import get_adversarial_prompt

logger = logging.getLogger(__name__)

NOT_CONFIGURED_CONTENT = "[Configure OPENAI_API_KEY to generate adversarial content.]"


async def generate_adversarial_content(template: str, gateway: ModelGateway) -> AdversarialContent:
    """
    공격 템플릿에 맞는 테스트용 콘텐츠를 생성합니다.

    Args:
        template (str): 공격 템플릿 설명 (예: "inheritance scam email").
        gateway (ModelGateway): 모델 게이트웨이.

    Returns:
        AdversarialContent: 생성된 콘텐츠와 탐지기가 잡아야 할 경고 목록.
            모델이 설정되지 않았으면 설정 안내 문구를 반환합니다.

    Raises:
        ValueError: 템플릿이 비어 있거나 응답 JSON 파싱 실패.
    """
    if not template or not template.strip():
        raise ValueError("template required")

    if not gateway.is_configured:
        return AdversarialContent(content=NOT_CONFIGURED_CONTENT, warnings=["No API key configured."])

    result = await gateway.generate_json(get_adversarial_prompt(template.strip()))
    if not isinstance(result, dict):
        raise ValueError("적대적 콘텐츠 응답이 JSON 객체가 아닙니다")

    warnings = result.get("warnings")
    content = AdversarialContent(
        content=str(result.get("content") or ""),
        script=str(result["script"]) if result.get("script") else None,
        warnings=[str(w) for w in warnings] if isinstance(warnings, list) else [],
    )
    logger.info(f"적대적 콘텐츠 생성 완료: 경고 {len(content.warnings)}개")
    return content
