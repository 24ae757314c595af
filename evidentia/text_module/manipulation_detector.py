"""조작/AI 생성 신호 탐지 (2단계)"""

import logging
from typing import Optional

from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.report import ManipulationAnalysis
from ..report_module.parser import parse_manipulation_analysis
from ..resources.prompts import get_manipulation_signals_prompt

logger = logging.getLogger(__name__)


class ManipulationDetector:
    """AI 생성 가능성 점수, 신호 목록, 모달리티별 의심 구간을 얻습니다."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    @log_execution("text", "manipulation")
    async def detect(self, evidence_text: str) -> Optional[ManipulationAnalysis]:
        """실패하면 None (호출자가 중립 기본값으로 대체)."""
        try:
            result = await self.gateway.generate_json(get_manipulation_signals_prompt(evidence_text))
            if not isinstance(result, dict):
                raise ValueError("조작 신호 응답이 JSON 객체가 아닙니다")

            analysis = parse_manipulation_analysis(result)
            logger.info(
                f"조작 신호 탐지 완료: AI 가능성 {analysis.ai_likelihood}, 의심 구간 {len(analysis.flagged_segments)}개"
            )
            return analysis

        except Exception as e:
            logger.error(f"조작 신호 탐지 실패: {e}", exc_info=True)
            return None
