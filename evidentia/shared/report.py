"""Truth Report 스키마"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

Verdict = Literal["Likely True", "Mixed/Unclear", "Likely False", "Manipulated/Deceptive"]
Checkability = Literal["checkable", "partially_checkable", "opinion"]
Importance = Literal["high", "medium", "low"]
Severity = Literal["high", "medium", "low"]
VerificationStatus = Literal["Supported", "Disputed", "NotFound"]
ErrorCode = Literal["missing_key", "gemini_error"]

# 모델 백엔드 실패 시 리포트 error.code (클라이언트 호환을 위해 유지)
MODEL_ERROR_CODE = "gemini_error"
MISSING_KEY_ERROR_CODE = "missing_key"

VERDICTS = ("Likely True", "Mixed/Unclear", "Likely False", "Manipulated/Deceptive")
SAFETY_NOTE = (
    "This report is for decision support only. It is not legal, medical, or professional advice. "
    "Verify critical claims independently."
)


def _round_score(value: Any) -> Any:
    # 모델이 72.5 같은 실수를 주는 경우가 있어 정수로 반올림
    if isinstance(value, float):
        return round(value)
    return value


Score = Annotated[int, BeforeValidator(_round_score), Field(ge=0, le=100)]


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportError(ReportModel):
    """리포트에 첨부되는 에러 정보."""
    code: ErrorCode
    message: str
    status_code: Optional[int] = None


class ExecutiveSummary(ReportModel):
    verdict: Verdict
    confidence: Score
    why: List[str] = Field(default_factory=list)
    what_to_do_next: List[str] = Field(default_factory=list)


class Claim(ReportModel):
    id: str = Field(..., description="리포트 내 고유 ID (c1, c2, ...)")
    text: str
    category: str = "general"
    checkability: Checkability = "partially_checkable"
    importance: Importance = "medium"
    source_evidence_ids: List[str] = Field(default_factory=list)


class EvidenceLedgerEntry(ReportModel):
    id: str
    type: str
    name: str
    key_facts: List[str] = Field(default_factory=list)
    extracted_text_preview: str = ""
    metadata: Optional[Dict[str, Any]] = None


class SourceDetail(ReportModel):
    source: str = ""
    detail: str = ""


class Contradiction(ReportModel):
    claim_id: Optional[str] = None
    source_a: SourceDetail = Field(default_factory=SourceDetail)
    source_b: SourceDetail = Field(default_factory=SourceDetail)
    severity: Severity = "medium"
    explanation: str = ""


class TimedSegment(ReportModel):
    """영상/오디오 구간 (초 단위)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    modality: Literal["video", "audio"]
    start_sec: float = Field(..., ge=0)
    end_sec: float = Field(..., ge=0)
    reason: str = ""
    confidence: Score = 50


class TextSegment(ReportModel):
    """텍스트 인용 구간."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    modality: Literal["text"]
    snippet: str
    reason: str = ""
    confidence: Score = 50


class ImageSegment(ReportModel):
    """이미지 영역."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    modality: Literal["image"]
    region_hint: str
    reason: str = ""
    confidence: Score = 50


FlaggedSegment = Annotated[
    Union[TimedSegment, TextSegment, ImageSegment],
    Field(discriminator="modality"),
]


class ManipulationAnalysis(ReportModel):
    ai_likelihood: Score = 0
    deepfake_signals: List[str] = Field(default_factory=list)
    signals: List[str] = Field(default_factory=list)
    flagged_segments: List[FlaggedSegment] = Field(default_factory=list)
    breakdown_by_modality: Dict[str, Score] = Field(default_factory=dict)


class BiasAnalysis(ReportModel):
    bias_score: Score = 0
    persuasion_tactics: List[str] = Field(default_factory=list)
    emotional_manipulation: List[str] = Field(default_factory=list)
    scam_risk_score: Score = 0
    explanation: str = ""


class TimelineEvent(ReportModel):
    t: str
    label: str
    source_ids: List[str] = Field(default_factory=list)
    inferred: bool = False


class Timeline(ReportModel):
    events: List[TimelineEvent] = Field(default_factory=list)
    confidence: Score = 0


class Citation(ReportModel):
    title: str = ""
    domain: str = ""
    snippet: str = ""
    link: str = ""


class ClaimVerification(ReportModel):
    claim_id: str
    status: VerificationStatus = "NotFound"
    notes: str = ""
    citations: List[Citation] = Field(default_factory=list, max_length=3)


class ExternalVerification(ReportModel):
    enabled: bool = False
    per_claim: List[ClaimVerification] = Field(default_factory=list)
    reliability_note: str = ""


class Transparency(ReportModel):
    analyzed: List[str] = Field(default_factory=list)
    not_analyzed: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    safety_note: str = SAFETY_NOTE


class Scores(ReportModel):
    consistency: Score = 0
    manipulation_risk: Score = 0
    bias: Score = 0
    scam_risk: Score = 0
    timeline_confidence: Score = 0
    ai_likelihood: Score = 0


class TruthReport(ReportModel):
    """
    최종 Truth Report.
    verdict와 confidence는 executive_summary에만 저장되며 최상위에는 계산 필드로 노출됩니다.
    """
    executive_summary: ExecutiveSummary
    claims: List[Claim] = Field(default_factory=list)
    evidence_ledger: List[EvidenceLedgerEntry] = Field(default_factory=list)
    contradictions: List[Contradiction] = Field(default_factory=list)
    missing_context_flags: List[str] = Field(default_factory=list)
    manipulation_analysis: ManipulationAnalysis = Field(default_factory=ManipulationAnalysis)
    bias_analysis: BiasAnalysis = Field(default_factory=BiasAnalysis)
    timeline: Timeline = Field(default_factory=Timeline)
    external_verification: ExternalVerification = Field(default_factory=ExternalVerification)
    transparency: Transparency = Field(default_factory=Transparency)
    scores: Scores = Field(default_factory=Scores)
    source: Literal["live", "demo"] = "live"
    error: Optional[ReportError] = None

    @computed_field
    @property
    def verdict(self) -> Verdict:
        return self.executive_summary.verdict

    @computed_field
    @property
    def confidence(self) -> int:
        return self.executive_summary.confidence
