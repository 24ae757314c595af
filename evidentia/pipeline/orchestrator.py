"""
분석 파이프라인 - 정규화, 미디어 사전 분석, 4단계 오케스트레이션, 보정
"""

import asyncio
import logging
import time
import uuid
from typing import Dict, List, Optional

from ..config import Config
from ..evidence_module.normalizer import (
    cleanup_scratch,
    combine_evidence_text,
    create_scratch_root,
    normalize_evidence,
)
from ..media_module.enricher import enrich_evidence
from ..report_module.builders import (
    build_evidence_ledger,
    build_inferred_timeline,
    describe_analyzed,
    inferred_timeline_confidence,
)
from ..report_module.calibrator import calibrate_report
from ..report_module.fallback import build_demo_report, build_error_report
from ..shared.errors import AnalysisTimeoutError, InvalidInputError, get_error_status_code
from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import set_run_id
from ..shared.report import (
    MISSING_KEY_ERROR_CODE,
    Claim,
    ExternalVerification,
    ManipulationAnalysis,
    ReportError,
    TruthReport,
)
from ..shared.schemas import AnalysisOptions, AnalysisResult, EvidenceInput, NormalizedEvidence
from ..shared.search_client import SearchClient
from ..text_module.claim_extractor import ClaimExtractor
from ..text_module.manipulation_detector import ManipulationDetector
from ..text_module.report_synthesizer import ReportSynthesizer
from ..text_module.verifier import ExternalVerifier

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "OPENAI_API_KEY not configured. Add it in .env for full analysis."


class StageOrchestrator:
    """
    주장 추출 → 조작 신호 탐지 → 외부 검증 → 리포트 합성을 엄격히 순서대로 실행합니다.

    1~3단계의 실패는 빈 값/중립 기본값으로 대체되고 transparency.limitations에 기록됩니다.
    4단계 실패는 최소 에러 리포트로 변환됩니다.
    """

    def __init__(self, gateway: ModelGateway, search_client: SearchClient, run_id: Optional[str] = None):
        self.run_id = run_id
        self.claim_extractor = ClaimExtractor(gateway)
        self.manipulation_detector = ManipulationDetector(gateway)
        self.verifier = ExternalVerifier(gateway, search_client)
        self.synthesizer = ReportSynthesizer(gateway)

    async def run(self, items: List[NormalizedEvidence]) -> TruthReport:
        """
        정규화(및 사전 분석)된 증거로 리포트를 생성합니다.

        Args:
            items (List[NormalizedEvidence]): 증거 목록 (1개 이상).

        Returns:
            TruthReport: 보정된 리포트 또는 source="live"인 에러 리포트.
        """
        limitations: List[str] = []
        evidence_text = combine_evidence_text(items)
        logger.info(f"[{self.run_id}] 파이프라인 시작: 증거 {len(items)}개, 텍스트 {len(evidence_text)}자")

        # 1단계: 주장 추출
        claims = await self.claim_extractor.extract(evidence_text)
        if claims is None:
            claims = []
            limitations.append("Claim extraction failed; no claims were extracted from the evidence.")

        # 2단계: 조작 신호 탐지
        manipulation = await self.manipulation_detector.detect(evidence_text)
        if manipulation is None:
            manipulation = ManipulationAnalysis()
            limitations.append("Manipulation signal detection failed; neutral defaults were used.")

        # 3단계: 외부 검증
        verification = await self.verifier.verify(claims)
        if not verification.enabled and verification.reliability_note:
            limitations.append(verification.reliability_note)

        # 4단계: 리포트 합성
        ledger = build_evidence_ledger(items)
        try:
            report = await self.synthesizer.synthesize(
                claims=claims,
                ledger=ledger,
                manipulation=manipulation,
                timeline_skeleton=build_inferred_timeline(items),
                timeline_confidence=inferred_timeline_confidence(items),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[{self.run_id}] 리포트 합성 실패: {e}", exc_info=True)
            return build_error_report(items, str(e), get_error_status_code(e))

        report = self._merge_stage_outputs(report, items, claims, manipulation, verification, limitations)
        return calibrate_report(report, items)

    @staticmethod
    def _merge_stage_outputs(
        report: TruthReport,
        items: List[NormalizedEvidence],
        claims: List[Claim],
        manipulation: ManipulationAnalysis,
        verification: ExternalVerification,
        limitations: List[str]
    ) -> TruthReport:
        # 외부 검증 결과는 모델 출력이 아닌 3단계 결과만 사용
        report.external_verification = verification

        if not report.claims:
            report.claims = claims

        model_analysis = report.manipulation_analysis
        if not model_analysis.flagged_segments:
            model_analysis.flagged_segments = manipulation.flagged_segments
        if not model_analysis.signals:
            model_analysis.signals = manipulation.signals
        if not model_analysis.ai_likelihood and manipulation.ai_likelihood:
            model_analysis.ai_likelihood = manipulation.ai_likelihood
            report.scores.ai_likelihood = max(report.scores.ai_likelihood, manipulation.ai_likelihood)
            report.scores.manipulation_risk = max(report.scores.manipulation_risk, manipulation.ai_likelihood)

        # 원장 ID는 입력 순서 기준, 핵심 사실은 사전 분석이 없을 때만 모델 값 사용
        model_ledger = report.evidence_ledger
        ledger = build_evidence_ledger(items)
        for idx, entry in enumerate(ledger):
            if not entry.key_facts and idx < len(model_ledger):
                entry.key_facts = model_ledger[idx].key_facts
        report.evidence_ledger = ledger

        transparency = report.transparency
        if not transparency.analyzed:
            transparency.analyzed = describe_analyzed(items)
        for idx, item in enumerate(items):
            if item.type == "video" and not item.keyframe_paths:
                transparency.not_analyzed.append(f"video: {item.display_name(idx)} (no keyframes extracted)")
        transparency.limitations.extend(l for l in limitations if l not in transparency.limitations)

        report.source = "live"
        report.error = None
        return report


async def _normalize_all(
    inputs: List[EvidenceInput],
    scratch_root: str,
    deadline: float
) -> List[NormalizedEvidence]:
    normalized = await asyncio.gather(
        *(asyncio.to_thread(normalize_evidence, ev, scratch_root, deadline) for ev in inputs)
    )
    return list(normalized)


async def _run_pipeline(
    inputs: List[EvidenceInput],
    options: AnalysisOptions,
    gateway: ModelGateway,
    search_client: SearchClient,
    run_id: str,
    scratch_root: str,
    deadline: float
) -> AnalysisResult:
    items = await _normalize_all(inputs, scratch_root, deadline)

    if options.mode == "demo" or not gateway.is_configured:
        report = build_demo_report(items, options.scenario_id)
        if options.mode != "demo":
            report.error = ReportError(code=MISSING_KEY_ERROR_CODE, message=MISSING_KEY_MESSAGE)
        return AnalysisResult(report=report, source="demo", error=report.error)

    await enrich_evidence(items, gateway)
    report = await StageOrchestrator(gateway, search_client, run_id).run(items)
    return AnalysisResult(report=report, source=report.source, error=report.error)


async def run_analysis(
    inputs: List[EvidenceInput],
    options: Optional[AnalysisOptions] = None,
    gateway: Optional[ModelGateway] = None,
    search: Optional[SearchClient] = None
) -> AnalysisResult:
    """
    증거 목록을 분석하여 Truth Report를 반환하는 파이프라인 진입점.

    Args:
        inputs (List[EvidenceInput]): 제출된 증거 (1개 이상).
        options (Optional[AnalysisOptions]): 실행 모드와 데모 시나리오.
        gateway (Optional[ModelGateway]): 모델 게이트웨이 (기본값: Config로 생성).
        search (Optional[SearchClient]): 검색 클라이언트 (기본값: Config로 생성).

    Returns:
        AnalysisResult: 리포트, 출처(live/demo), 에러 정보.

    Raises:
        InvalidInputError: 증거 목록이 비어 있는 경우.
        AnalysisTimeoutError: Config.ANALYSIS_TIMEOUT_SEC를 초과한 경우.
    """
    if not inputs:
        raise InvalidInputError("At least one evidence input is required")

    options = options if options else AnalysisOptions()
    gateway = gateway if gateway else ModelGateway.from_config()
    search = search if search else SearchClient.from_config()

    run_id = uuid.uuid4().hex[:12]
    set_run_id(run_id)
    # ffmpeg 호출도 실행 마감 시각을 넘지 않음
    deadline = time.monotonic() + Config.ANALYSIS_TIMEOUT_SEC
    scratch_root = create_scratch_root()

    try:
        result = await asyncio.wait_for(
            _run_pipeline(inputs, options, gateway, search, run_id, scratch_root, deadline),
            timeout=Config.ANALYSIS_TIMEOUT_SEC,
        )
    except asyncio.TimeoutError as e:
        logger.error(f"[{run_id}] 분석 시간 초과 ({Config.ANALYSIS_TIMEOUT_SEC}s)")
        raise AnalysisTimeoutError(Config.ANALYSIS_TIMEOUT_SEC) from e
    finally:
        cleanup_scratch(scratch_root)

    logger.info(
        f"[{run_id}] 분석 완료: {result.report.executive_summary.verdict} "
        f"({result.report.executive_summary.confidence}), source={result.source}"
    )
    return result


def get_status(
    gateway: Optional[ModelGateway] = None,
    search: Optional[SearchClient] = None
) -> Dict[str, bool]:
    """모델/검색 백엔드 설정 여부 (자격 증명은 노출하지 않음)."""
    model_ok = gateway.is_configured if gateway else Config.is_model_configured()
    search_ok = search.is_configured if search else Config.is_search_configured()
    return {"model": model_ok, "search": search_ok}
