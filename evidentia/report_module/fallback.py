"""
데모(휴리스틱) 리포트와 합성 실패 시의 최소 에러 리포트
"""

import re
import logging
from typing import List, Optional

from ..shared.report import (
    BiasAnalysis,
    Claim,
    ClaimVerification,
    Contradiction,
    ExecutiveSummary,
    ExternalVerification,
    ManipulationAnalysis,
    MODEL_ERROR_CODE,
    ReportError,
    Scores,
    SourceDetail,
    TextSegment,
    TimedSegment,
    Timeline,
    Transparency,
    TruthReport,
)
from ..shared.schemas import NormalizedEvidence
from ..resources.demo_scenarios import SEEDED_CITATIONS
from .builders import (
    build_evidence_ledger,
    build_inferred_timeline,
    describe_analyzed,
    inferred_timeline_confidence,
)

logger = logging.getLogger(__name__)

HEURISTIC_WINDOW_CHARS = 500
DEMO_CLAIM_CHARS = 120

SCAM_PATTERN = re.compile(r"urgent|wire transfer|inheritance|lottery|click here|verify your account", re.IGNORECASE)
VIRAL_PATTERN = re.compile(r"breaking|unnamed source|insiders|share to spread", re.IGNORECASE)
RELATIONSHIP_PATTERN = re.compile(r"screenshot|Person A|Person B|Dec \d", re.IGNORECASE)
AI_MEDIA_PATTERN = re.compile(r"synthetic|AI-generated|confession script|unnatural cadence", re.IGNORECASE)
META_DEMO_PATTERN = re.compile(r"demo video|AI vs real|segments", re.IGNORECASE)


def _heuristic_flags(first_text: str, scenario_id: Optional[str]) -> dict:
    return {
        "scam": bool(SCAM_PATTERN.search(first_text)),
        "viral": scenario_id == "viral-news" or bool(VIRAL_PATTERN.search(first_text)),
        "relationship": scenario_id == "relationship-screenshots" or bool(RELATIONSHIP_PATTERN.search(first_text)),
        "ai_media": scenario_id == "ai-media-clip" or bool(AI_MEDIA_PATTERN.search(first_text)),
        "meta_demo": scenario_id == "meta-demo" or bool(META_DEMO_PATTERN.search(first_text)),
    }


def _demo_contradictions(flags: dict) -> List[Contradiction]:
    contradictions = []
    if flags["viral"]:
        contradictions.append(Contradiction(
            claim_id="c1",
            source_a=SourceDetail(source="Article headline", detail="Claims marriage over, breaking news."),
            source_b=SourceDetail(source="Official sources", detail="No official statement released."),
            severity="medium",
            explanation="Headline and unnamed sources contradict lack of official confirmation.",
        ))
    if flags["relationship"]:
        contradictions.append(Contradiction(
            claim_id="c1",
            source_a=SourceDetail(source="Screenshot 1", detail="Person B apologizes, admits mistake."),
            source_b=SourceDetail(source="Screenshot 3", detail="Person B says they have moved on."),
            severity="low",
            explanation="Timeline suggests shifting narrative; screenshots could be edited or out of order.",
        ))
    return contradictions


def _demo_segments(flags: dict) -> list:
    segments = []
    if flags["ai_media"]:
        segments.extend([
            TextSegment(modality="text", snippet="Synthetic voice / AI-generated", reason="Declared synthetic script", confidence=85),
            TextSegment(modality="text", snippet="I want to apologize to everyone affected", reason="Repetitive phrasing", confidence=72),
        ])
    if flags["meta_demo"]:
        segments.extend([
            TimedSegment(modality="video", start_sec=0, end_sec=45, reason="Likely AI-generated narration", confidence=78),
            TimedSegment(modality="video", start_sec=45, end_sec=90, reason="Real UI capture", confidence=85),
            TimedSegment(modality="video", start_sec=90, end_sec=120, reason="Possible synthetic voice", confidence=65),
        ])
    return segments


def build_demo_report(items: List[NormalizedEvidence], scenario_id: Optional[str] = None) -> TruthReport:
    """
    모델 백엔드가 설정되지 않았을 때 첫 번째 증거 텍스트의 키워드 휴리스틱으로 리포트를 만듭니다.

    Args:
        items (List[NormalizedEvidence]): 정규화된 증거.
        scenario_id (Optional[str]): 데모 시나리오 ID (휴리스틱 보조).

    Returns:
        TruthReport: source="demo"인 결정적 리포트.
    """
    first_text = items[0].text[:HEURISTIC_WINDOW_CHARS] if items else ""
    flags = _heuristic_flags(first_text, scenario_id)
    is_scam, is_viral, is_ai = flags["scam"], flags["viral"], flags["ai_media"]

    verdict = "Manipulated/Deceptive" if is_scam or is_ai else "Mixed/Unclear"
    confidence = 88 if is_scam else 72 if is_ai else 45 if is_viral else 58
    manipulation_risk = 75 if is_scam or is_ai else 35
    ai_likelihood = 75 if is_ai else 65 if is_scam else 35
    bias_score = 80 if is_scam else 60 if is_viral else 30
    scam_risk = 95 if is_scam else 25
    signals = ["Urgency", "Persuasion tactics"] if is_scam else ["Repetitive structure", "Declared synthetic"] if is_ai else []

    claims = []
    if first_text:
        claims.append(Claim(
            id="c1",
            text=first_text[:DEMO_CLAIM_CHARS] + "...",
            category="general",
            checkability="partially_checkable",
            importance="medium",
        ))
    contradictions = _demo_contradictions(flags)

    per_claim = [
        ClaimVerification(
            claim_id=claim.id,
            status="Disputed" if is_scam else "Supported",
            citations=[c.model_copy() for c in SEEDED_CITATIONS[:2]],
        )
        for claim in claims
    ]

    report = TruthReport(
        executive_summary=ExecutiveSummary(
            verdict=verdict,
            confidence=confidence,
            why=[
                "Scam-like language and urgency detected." if is_scam
                else "Scripted/synthetic tone and markers detected." if is_ai
                else "Evidence analyzed with limited heuristics (demo mode).",
                "Contradictions or missing context identified." if contradictions
                else "Insufficient external verification in demo mode.",
                "Add OPENAI_API_KEY for full analysis.",
            ],
            what_to_do_next=[
                "Do not send money or credentials based on this content.",
                "Verify claims with official sources.",
                "Use full Truth Engine with API keys for production.",
            ],
        ),
        claims=claims,
        evidence_ledger=build_evidence_ledger(items, default_key_facts=["Processed in demo mode"]),
        contradictions=contradictions,
        missing_context_flags=["Demo mode: limited analysis"],
        manipulation_analysis=ManipulationAnalysis(
            ai_likelihood=ai_likelihood,
            deepfake_signals=["Urgency language"] if is_scam else ["Scripted cadence"] if is_ai else [],
            signals=signals,
            flagged_segments=_demo_segments(flags),
            breakdown_by_modality={
                "text": 80 if is_ai else 40,
                "image": 0,
                "audio": 70 if is_ai else 0,
                "video": 60 if flags["meta_demo"] else 0,
                "link": 0,
                "pdf": 0,
            },
        ),
        bias_analysis=BiasAnalysis(
            bias_score=bias_score,
            persuasion_tactics=["Urgency", "Authority"] if is_scam else [],
            scam_risk_score=scam_risk,
            explanation="Classic advance-fee scam patterns." if is_scam
            else "Clickbait and unverified claims." if is_viral
            else "Limited bias signals in demo mode.",
        ),
        timeline=Timeline(events=build_inferred_timeline(items), confidence=40),
        external_verification=ExternalVerification(
            enabled=False,
            per_claim=per_claim,
            reliability_note="Demo mode: sample citations for illustration. Configure a search provider for real verification.",
        ),
        transparency=Transparency(
            analyzed=describe_analyzed(items),
            not_analyzed=["External search", "Full media parsing"],
            limitations=["Demo mode", "No external search", "Heuristic-only when no API key"],
        ),
        scores=Scores(
            consistency=70,
            manipulation_risk=manipulation_risk,
            bias=bias_score,
            scam_risk=scam_risk,
            timeline_confidence=40,
            ai_likelihood=ai_likelihood,
        ),
        source="demo",
    )
    logger.info(f"데모 리포트 생성: {verdict} ({confidence})")
    return report


def build_error_report(
    items: List[NormalizedEvidence],
    message: str,
    status_code: Optional[int] = None
) -> TruthReport:
    """
    리포트 합성 실패 시 증거 원장과 추정 타임라인만 담은 최소 리포트를 만듭니다.

    Args:
        items (List[NormalizedEvidence]): 정규화된 증거.
        message (str): 원인 에러 메시지.
        status_code (Optional[int]): 백엔드 HTTP 상태 코드 (있는 경우).

    Returns:
        TruthReport: source="live", error.code="gemini_error"인 리포트.
    """
    return TruthReport(
        executive_summary=ExecutiveSummary(
            verdict="Mixed/Unclear",
            confidence=0,
            why=["Analysis could not be completed. See the error details."],
            what_to_do_next=[
                "Check your OPENAI_API_KEY and try again.",
                "Ensure the API is not rate-limited.",
                "Retry with shorter or different evidence.",
            ],
        ),
        evidence_ledger=build_evidence_ledger(items),
        timeline=Timeline(events=build_inferred_timeline(items), confidence=inferred_timeline_confidence(items)),
        external_verification=ExternalVerification(enabled=False),
        transparency=Transparency(
            analyzed=describe_analyzed(items),
            limitations=["Analysis failed before completion."],
        ),
        source="live",
        error=ReportError(code=MODEL_ERROR_CODE, message=message, status_code=status_code),
    )
