"""이미지 증거 사전 분석 (요약, OCR, 조작 신호)"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ..resources.prompts import IMAGE_ANALYSIS_PROMPT
from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.schemas import NormalizedEvidence

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 500
EXTRACTED_TEXT_MAX_CHARS = 2000
MAX_SIGNALS = 10


class ImageAnalysis(BaseModel):
    summary: str = Field("", description="이미지 내용 요약 (1-3문장)")
    extracted_text: Optional[str] = Field(None, description="이미지 내 텍스트 (OCR)")
    manipulation_signals: List[str] = Field(default_factory=list, description="조작 의심 신호")


def clean_signal_list(value, limit: int = MAX_SIGNALS) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(s).strip() for s in value if str(s).strip()][:limit]


class ImageAnalyzer:
    """이미지 한 건당 모델 호출 한 번으로 요약/텍스트/조작 신호를 얻습니다."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    @log_execution("media", "image_analysis")
    async def analyze(self, item: NormalizedEvidence) -> Optional[ImageAnalysis]:
        """
        이미지 증거를 분석합니다.

        Args:
            item (NormalizedEvidence): inline_image가 있는 이미지 증거.

        Returns:
            Optional[ImageAnalysis]: 분석 결과. 대상이 아니거나 실패하면 None.
        """
        if item.type != "image" or item.inline_image is None:
            return None

        try:
            result = await self.gateway.generate_json(IMAGE_ANALYSIS_PROMPT, parts=[item.inline_image])
            if not isinstance(result, dict):
                raise ValueError("이미지 분석 응답이 JSON 객체가 아닙니다")

            extracted = str(result.get("extractedText") or "").strip()[:EXTRACTED_TEXT_MAX_CHARS]
            return ImageAnalysis(
                summary=str(result.get("summary") or "").strip()[:SUMMARY_MAX_CHARS],
                extracted_text=extracted or None,
                manipulation_signals=clean_signal_list(result.get("manipulationSignals")),
            )
        except Exception as e:
            logger.error(f"이미지 분석 실패 ({item.filename}): {e}")
            return None

    @staticmethod
    def merge(item: NormalizedEvidence, analysis: ImageAnalysis) -> None:
        """분석 결과를 라벨이 붙은 섹션으로 증거 텍스트에 덧붙입니다."""
        sections = [item.text]
        if analysis.summary:
            sections.append(f"[Image summary]\n{analysis.summary}")
            item.key_facts.append(analysis.summary)
        if analysis.extracted_text:
            sections.append(f"[Image text]\n{analysis.extracted_text}")
        if analysis.manipulation_signals:
            sections.append("[Image manipulation signals]\n- " + "\n- ".join(analysis.manipulation_signals))
        item.text = "\n\n".join(sections)
