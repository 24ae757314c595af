"""리포트 합성 (4단계)"""

import json
import logging
from typing import Any, List

from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.report import Claim, EvidenceLedgerEntry, ManipulationAnalysis, TimelineEvent, TruthReport
from ..report_module.parser import parse_truth_report
from ..resources.prompts import get_report_synthesis_prompt

logger = logging.getLogger(__name__)


def _to_json(value: Any) -> str:
    if isinstance(value, list):
        value = [v.model_dump(by_alias=True) if hasattr(v, "model_dump") else v for v in value]
    elif hasattr(value, "model_dump"):
        value = value.model_dump(by_alias=True)
    return json.dumps(value, indent=2, ensure_ascii=False)


class ReportSynthesizer:
    """채점 기준표가 포함된 프롬프트로 전체 Truth Report를 합성합니다."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    @log_execution("text", "report_synthesis")
    async def synthesize(
        self,
        claims: List[Claim],
        ledger: List[EvidenceLedgerEntry],
        manipulation: ManipulationAnalysis,
        timeline_skeleton: List[TimelineEvent],
        timeline_confidence: int
    ) -> TruthReport:
        """
        단계별 결과를 종합하여 리포트를 생성합니다.

        이 단계의 실패는 실행 전체에 치명적이므로 예외를 그대로 전파합니다.

        Args:
            claims (List[Claim]): 1단계 주장.
            ledger (List[EvidenceLedgerEntry]): 증거 원장.
            manipulation (ManipulationAnalysis): 2단계 조작 신호.
            timeline_skeleton (List[TimelineEvent]): 증거 순서 기반 추정 타임라인.
            timeline_confidence (int): 추정 타임라인 신뢰도.

        Returns:
            TruthReport: 파싱/정규화된 리포트 (보정 전).

        Raises:
            ModelNotConfiguredError, EmptyResponseError: 게이트웨이 실패.
            ValueError: JSON 파싱 실패.
            ReportValidationError: 스키마 검증 실패.
        """
        consistency = {"contradictions": [], "missingContextFlags": [], "consistencyScore": 85}
        bias = {
            "biasScore": 0,
            "persuasionTactics": [],
            "emotionalManipulation": [],
            "scamRiskScore": 0,
            "explanation": "",
        }
        timeline = {
            "events": [e.model_dump(by_alias=True) for e in timeline_skeleton],
            "confidence": timeline_confidence,
        }

        prompt = get_report_synthesis_prompt(
            claims_json=_to_json(claims),
            ledger_json=_to_json(ledger),
            consistency_json=_to_json(consistency),
            manipulation_json=_to_json(manipulation),
            bias_json=_to_json(bias),
            timeline_json=_to_json(timeline),
        )

        result = await self.gateway.generate_json(prompt)
        report = parse_truth_report(result)
        logger.info(
            f"리포트 합성 완료: {report.executive_summary.verdict} ({report.executive_summary.confidence})"
        )
        return report
