"""
리포트 보정 (Calibration).

합성된 리포트에 모델과 무관한 결정적 규칙을 순서대로 적용합니다.
상한 규칙(2, 3)이 정한 최대값은 뒤의 하한 규칙(4, 5)도 넘지 않습니다.
"""

import logging
from typing import List

from ..config import Config
from ..shared.report import TruthReport
from ..shared.schemas import NormalizedEvidence
from .builders import build_inferred_timeline, inferred_timeline_confidence

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 100


def ensure_timeline(report: TruthReport, items: List[NormalizedEvidence]) -> TruthReport:
    """타임라인이 비어 있으면 증거별 추정 이벤트(T0, T0+1, ...)로 채웁니다."""
    if not report.timeline.events:
        report.timeline.events = build_inferred_timeline(items)
        if not report.timeline.confidence:
            report.timeline.confidence = inferred_timeline_confidence(items)
        logger.info(f"타임라인 비어 있음 - 추정 이벤트 {len(items)}개로 대체")
    return report


def checkable_ratio(report: TruthReport) -> float:
    if not report.claims:
        return 0.0
    checkable = sum(1 for c in report.claims if c.checkability == "checkable")
    return checkable / len(report.claims)


def is_signal_high(report: TruthReport) -> bool:
    threshold = Config.CALIBRATION_HIGH_SIGNAL
    return report.scores.manipulation_risk >= threshold or report.scores.ai_likelihood >= threshold


def calibrate_report(report: TruthReport, items: List[NormalizedEvidence]) -> TruthReport:
    """
    합성된 리포트에 보정 규칙을 적용합니다.

    1. 타임라인이 비어 있으면 추정 타임라인으로 대체
    2. 외부 검증이 비활성화되어 있으면 신뢰도 상한 65
    3. 주장이 있고 checkable 비율이 0.3 미만이면 신뢰도 상한 55, "Likely True"는 "Mixed/Unclear"로 하향
    4. 인용이 있는 주장이 3개 이상이고 그중 Disputed 비율이 0.6 이상이며 조작/AI 점수가 높으면
       신뢰도 하한 65 (Manipulated/Deceptive) 또는 55
    5. 판정이 Manipulated/Deceptive이고 조작/AI 점수가 높으면 신뢰도 하한 55

    Args:
        report (TruthReport): 파싱된 리포트 (제자리에서 수정됨).
        items (List[NormalizedEvidence]): 실행의 정규화된 증거.

    Returns:
        TruthReport: 보정된 리포트.
    """
    ensure_timeline(report, items)
    summary = report.executive_summary
    original = (summary.verdict, summary.confidence)
    ceiling = MAX_CONFIDENCE

    # 검색 미설정뿐 아니라 주장 없음, 인용 매핑 실패로 검증되지 않은 경우도 상한 적용
    if not report.external_verification.enabled:
        ceiling = min(ceiling, Config.CALIBRATION_NO_VERIFICATION_CAP)
        summary.confidence = min(summary.confidence, ceiling)

    if report.claims and checkable_ratio(report) < Config.CALIBRATION_CHECKABLE_RATIO_MIN:
        ceiling = min(ceiling, Config.CALIBRATION_LOW_CHECKABLE_CAP)
        summary.confidence = min(summary.confidence, ceiling)
        if summary.verdict == "Likely True":
            summary.verdict = "Mixed/Unclear"

    signal_high = is_signal_high(report)
    cited = [v for v in report.external_verification.per_claim if v.citations]
    if len(cited) >= Config.CALIBRATION_MIN_CITED_CLAIMS and signal_high:
        disputed_ratio = sum(1 for v in cited if v.status == "Disputed") / len(cited)
        if disputed_ratio >= Config.CALIBRATION_DISPUTED_RATIO_MIN:
            floor = (
                Config.CALIBRATION_MANIPULATED_FLOOR
                if summary.verdict == "Manipulated/Deceptive"
                else Config.CALIBRATION_DISPUTED_FLOOR
            )
            summary.confidence = max(summary.confidence, min(floor, ceiling))

    if summary.verdict == "Manipulated/Deceptive" and signal_high:
        summary.confidence = max(summary.confidence, min(Config.CALIBRATION_MANIPULATED_MIN, ceiling))

    if (summary.verdict, summary.confidence) != original:
        logger.info(
            f"리포트 보정: {original[0]}/{original[1]} -> {summary.verdict}/{summary.confidence}"
        )
    return report
