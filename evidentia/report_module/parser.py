"""
모델 출력 파싱 (신뢰 경계).

모델 JSON에 섞여 들어오는 별칭 필드(verdict/executiveSummary.verdict, whichParts/flaggedSegments,
claimVerifications/perClaim 등)를 여기서 한 번만 정규 스키마로 변환합니다.
이후의 컴포넌트는 정규화된 pydantic 모델만 다룹니다.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from ..shared.errors import ReportValidationError
from ..shared.report import (
    Citation,
    Claim,
    ClaimVerification,
    EvidenceLedgerEntry,
    FlaggedSegment,
    ManipulationAnalysis,
    SAFETY_NOTE,
    TimelineEvent,
    TruthReport,
)
from ..shared.search_client import extract_domain

logger = logging.getLogger(__name__)

_SEGMENT_ADAPTER = TypeAdapter(FlaggedSegment)

CHECKABILITY_VALUES = ("checkable", "partially_checkable", "opinion")
LEVEL_VALUES = ("low", "medium", "high")
STATUS_ALIASES = {
    "supported": "Supported",
    "disputed": "Disputed",
    "notfound": "NotFound",
    "not found": "NotFound",
    "not_found": "NotFound",
}
MAX_CITATIONS_PER_CLAIM = 3
DEFAULT_SEGMENT_CONFIDENCE = 70


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _str_list(value: Any) -> List[str]:
    return [str(v).strip() for v in _as_list(value) if v is not None and str(v).strip()]


def _number(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _score(value: Any, default: int = 0) -> int:
    """0-100 범위로 자른 정수 점수 (단계 출력용 관대한 변환)."""
    return int(round(min(max(_number(value, default), 0.0), 100.0)))


def _level(value: Any, default: str = "medium") -> str:
    text = str(value or "").strip().lower()
    return text if text in LEVEL_VALUES else default


def normalize_claims(raw_claims: Any) -> List[Claim]:
    """
    모델이 반환한 주장 목록을 정규화합니다.

    ID가 없거나 중복되면 순서대로 c1, c2, ... 를 부여하여 리포트 내 고유성을 보장합니다.

    Args:
        raw_claims (Any): 모델 출력의 claims 배열.

    Returns:
        List[Claim]: 텍스트가 있는 주장만 포함한 목록.
    """
    claims: List[Claim] = []
    seen = set()
    for raw in _as_list(raw_claims):
        if isinstance(raw, str):
            raw = {"text": raw}
        if not isinstance(raw, dict):
            continue
        text = str(raw.get("text") or "").strip()
        if not text:
            continue

        claim_id = str(raw.get("id") or "").strip()
        if not claim_id or claim_id in seen:
            n = len(claims) + 1
            while f"c{n}" in seen:
                n += 1
            claim_id = f"c{n}"
        seen.add(claim_id)

        checkability = str(raw.get("checkability") or "").strip().lower()
        claims.append(Claim(
            id=claim_id,
            text=text,
            category=str(raw.get("category") or "general"),
            checkability=checkability if checkability in CHECKABILITY_VALUES else "partially_checkable",
            importance=_level(raw.get("importance")),
            source_evidence_ids=_str_list(raw.get("sourceEvidenceIds")),
        ))
    return claims


def normalize_flagged_segments(raw_segments: Any) -> List[FlaggedSegment]:
    """
    flaggedSegments(정규형) 또는 whichParts(type/start/end/quote) 형태를 모달리티별 세그먼트로 변환합니다.
    알 수 없는 모달리티나 검증에 실패한 항목은 건너뜁니다.
    """
    segments: List[FlaggedSegment] = []
    for raw in _as_list(raw_segments):
        if not isinstance(raw, dict):
            continue
        modality = str(raw.get("modality") or raw.get("type") or "").strip().lower()
        common = {
            "reason": str(raw.get("reason") or ""),
            "confidence": _score(raw.get("confidence"), DEFAULT_SEGMENT_CONFIDENCE),
        }

        if modality in ("video", "audio"):
            start = max(_number(_first(raw.get("startSec"), raw.get("start")), 0.0), 0.0)
            end = _number(_first(raw.get("endSec"), raw.get("end")), start + 1.0)
            data = {"modality": modality, "startSec": start, "endSec": max(end, start), **common}
        elif modality == "text":
            data = {"modality": "text", "snippet": str(raw.get("snippet") or raw.get("quote") or ""), **common}
        elif modality == "image":
            data = {"modality": "image", "regionHint": str(raw.get("regionHint") or "see reason"), **common}
        else:
            logger.debug(f"알 수 없는 세그먼트 모달리티 무시: {modality}")
            continue

        try:
            segments.append(_SEGMENT_ADAPTER.validate_python(data))
        except ValidationError as e:
            logger.debug(f"세그먼트 검증 실패 무시: {e}")
    return segments


def parse_manipulation_analysis(raw: Any) -> ManipulationAnalysis:
    """조작 신호 단계 출력 (또는 리포트의 조작 분석 섹션)을 정규화합니다."""
    data = _as_dict(raw)
    breakdown = {
        str(k): _score(v)
        for k, v in _as_dict(data.get("breakdownByModality")).items()
        if isinstance(v, (int, float))
    }
    return ManipulationAnalysis(
        ai_likelihood=_score(_first(data.get("aiLikelihood"), data.get("overallLikelihood"), data.get("aiGeneratedScore"))),
        deepfake_signals=_str_list(data.get("deepfakeSignals")),
        signals=_str_list(data.get("signals")),
        flagged_segments=normalize_flagged_segments(data.get("flaggedSegments") or data.get("whichParts")),
        breakdown_by_modality=breakdown,
    )


def _parse_citation(raw: Any) -> Optional[Citation]:
    if not isinstance(raw, dict):
        return None
    link = str(raw.get("link") or raw.get("url") or "")
    title = str(raw.get("title") or "")
    if not link and not title:
        return None
    return Citation(
        title=title,
        domain=str(raw.get("domain") or (extract_domain(link) if link else "")),
        snippet=str(raw.get("snippet") or ""),
        link=link,
    )


def _normalize_status(value: Any) -> str:
    return STATUS_ALIASES.get(str(value or "").strip().lower(), "NotFound")


def parse_verification(raw: Any, claims: List[Claim]) -> Tuple[List[ClaimVerification], str]:
    """
    검증 요약 출력을 주장별 검증 결과로 변환합니다.

    claimId가 없으면 claimIndex로 주장 ID를 찾고, 인용은 주장당 최대 3개로 자릅니다.

    Args:
        raw (Any): 모델 출력 (perClaim 또는 claimVerifications 포함).
        claims (List[Claim]): 검증 대상 주장 (claimIndex 해석용).

    Returns:
        Tuple[List[ClaimVerification], str]: 주장별 검증 결과와 출처 신뢰도 메모.
    """
    data = _as_dict(raw)
    entries = data.get("perClaim") or data.get("claimVerifications")

    results: List[ClaimVerification] = []
    for idx, entry in enumerate(_as_list(entries)):
        if not isinstance(entry, dict):
            continue
        claim_id = entry.get("claimId")
        if not claim_id:
            claim_index = entry.get("claimIndex")
            if isinstance(claim_index, int) and 0 <= claim_index < len(claims):
                claim_id = claims[claim_index].id
            else:
                claim_id = f"c{idx + 1}"

        citations = [c for c in (_parse_citation(r) for r in _as_list(entry.get("citations"))) if c]
        results.append(ClaimVerification(
            claim_id=str(claim_id),
            status=_normalize_status(entry.get("status")),
            notes=str(entry.get("notes") or ""),
            citations=citations[:MAX_CITATIONS_PER_CLAIM],
        ))

    note = str(_first(data.get("reliabilityNote"), data.get("sourceReliabilityNote")) or "")
    return results, note


def _parse_contradiction(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    source_a = _first(raw.get("sourceA"), raw.get("a"))
    source_b = _first(raw.get("sourceB"), raw.get("b"))
    if source_a is None and raw.get("evidenceA"):
        source_a = {"source": str(raw["evidenceA"])}
    if source_b is None and raw.get("evidenceB"):
        source_b = {"source": str(raw["evidenceB"])}
    return {
        "claimId": raw.get("claimId"),
        "sourceA": _as_dict(source_a),
        "sourceB": _as_dict(source_b),
        "severity": _level(raw.get("severity")),
        "explanation": str(raw.get("explanation") or raw.get("description") or ""),
    }


def _parse_timeline_event(raw: Any) -> Optional[TimelineEvent]:
    if not isinstance(raw, dict):
        return None
    t = str(raw.get("t") or raw.get("time") or "").strip()
    label = str(raw.get("label") or raw.get("description") or "").strip()
    if not t and not label:
        return None
    return TimelineEvent(
        t=t or "Unspecified",
        label=label or t,
        source_ids=_str_list(raw.get("sourceIds")),
        inferred=bool(raw.get("inferred", False)),
    )


def _parse_ledger(raw_entries: Any) -> List[EvidenceLedgerEntry]:
    ledger = []
    for idx, raw in enumerate(_as_list(raw_entries)):
        if not isinstance(raw, dict):
            continue
        ledger.append(EvidenceLedgerEntry(
            id=str(raw.get("id") or f"e{idx + 1}"),
            type=str(raw.get("type") or "unknown"),
            name=str(raw.get("name") or raw.get("filename") or raw.get("url") or f"Evidence {idx + 1}"),
            key_facts=_str_list(raw.get("keyFacts") or raw.get("extractedFacts")),
            extracted_text_preview=str(raw.get("extractedTextPreview") or ""),
        ))
    return ledger


def parse_truth_report(raw: Any) -> TruthReport:
    """
    합성 단계의 모델 출력을 TruthReport로 변환합니다.

    Args:
        raw (Any): parse_json_response로 파싱된 모델 출력.

    Returns:
        TruthReport: 정규화된 리포트 (보정 전).

    Raises:
        ReportValidationError: JSON 객체가 아니거나 필수 필드(판정, 신뢰도 등)가 스키마에 맞지 않는 경우.
    """
    if not isinstance(raw, dict):
        raise ReportValidationError("Report validation failed: response is not a JSON object")

    summary = dict(_as_dict(raw.get("executiveSummary")))
    summary["verdict"] = _first(summary.get("verdict"), raw.get("verdict"))
    summary["confidence"] = _first(summary.get("confidence"), raw.get("confidence"))
    summary["whatToDoNext"] = summary.get("whatToDoNext") or summary.get("nextSteps") or []
    summary.pop("nextSteps", None)

    consistency = _as_dict(raw.get("crossModalConsistency"))
    manipulation = parse_manipulation_analysis({
        **_as_dict(raw.get("manipulationLikelihood")),
        **_as_dict(_first(raw.get("manipulationAnalysis"), raw.get("aiAnalysis"))),
    })
    bias = {
        k: v for k, v in _as_dict(_first(raw.get("biasAnalysis"), raw.get("biasPersuasion"))).items() if v is not None
    }
    timeline = _as_dict(raw.get("timeline"))
    timeline_confidence = _first(timeline.get("confidence"), timeline.get("timelineConfidence"), 0)
    transparency = _as_dict(raw.get("transparency"))

    claims = normalize_claims(raw.get("claims") or raw.get("claimsDetected"))
    per_claim, reliability_note = parse_verification(raw.get("externalVerification"), claims)

    derived_scores = {
        "consistency": consistency.get("consistencyScore", 0),
        "manipulationRisk": manipulation.ai_likelihood,
        "bias": bias.get("biasScore", 0),
        "scamRisk": bias.get("scamRiskScore", 0),
        "timelineConfidence": timeline_confidence,
        "aiLikelihood": manipulation.ai_likelihood,
    }
    reported_scores = {k: v for k, v in _as_dict(raw.get("scores")).items() if v is not None}

    canonical = {
        "executiveSummary": summary,
        "claims": claims,
        "evidenceLedger": _parse_ledger(raw.get("evidenceLedger")),
        "contradictions": [
            c for c in (_parse_contradiction(r) for r in _as_list(raw.get("contradictions") or consistency.get("contradictions"))) if c
        ],
        "missingContextFlags": _str_list(raw.get("missingContextFlags") or consistency.get("missingContextFlags")),
        "manipulationAnalysis": manipulation,
        "biasAnalysis": bias,
        "timeline": {
            "events": [e for e in (_parse_timeline_event(r) for r in _as_list(timeline.get("events"))) if e],
            "confidence": timeline_confidence,
        },
        "externalVerification": {
            "enabled": bool(_as_dict(raw.get("externalVerification")).get("enabled", False)),
            "perClaim": per_claim,
            "reliabilityNote": reliability_note,
        },
        "transparency": {
            "analyzed": _str_list(transparency.get("analyzed") or transparency.get("whatWasAnalyzed")),
            "notAnalyzed": _str_list(transparency.get("notAnalyzed")),
            "limitations": _str_list(transparency.get("limitations")),
            "safetyNote": str(transparency.get("safetyNote") or SAFETY_NOTE),
        },
        "scores": {**derived_scores, **reported_scores},
    }

    try:
        return TruthReport.model_validate(canonical)
    except ValidationError as e:
        raise ReportValidationError(f"Report validation failed: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e
