"""증거 입력 및 파이프라인 공통 데이터 스키마"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Literal

from .report import TruthReport, ReportError

# 증거 유형
EvidenceType = Literal["text", "link", "pdf", "image", "audio", "video"]
AnalysisMode = Literal["normal", "demo", "adversarial"]
ReportSource = Literal["live", "demo"]

FILE_EVIDENCE_TYPES = ("pdf", "image", "audio", "video")


class CamelModel(BaseModel):
    """외부(JSON)에는 camelCase, 내부에는 snake_case를 쓰는 기본 모델."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EvidenceInput(CamelModel):
    """
    호출자가 제출한 원본 증거 한 건.
    생성 후 변경되지 않으며, 유형별로 내용 출처가 반드시 하나 이상 있어야 합니다.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: EvidenceType = Field(..., description="증거 유형")
    location_ref: Optional[str] = Field(None, description="업로드 파일 경로 또는 키")
    url: Optional[str] = Field(None, description="링크 URL")
    raw_text: Optional[str] = Field(None, description="붙여넣은 텍스트 또는 가져온 HTML")

    @model_validator(mode="after")
    def _check_content_source(self) -> "EvidenceInput":
        if self.type == "text" and not self.raw_text:
            raise ValueError("text evidence requires rawText")
        if self.type == "link" and not (self.raw_text or self.url):
            raise ValueError("link evidence requires url or rawText")
        if self.type in FILE_EVIDENCE_TYPES and not self.location_ref:
            raise ValueError(f"{self.type} evidence requires locationRef")
        return self


class ContentPart(CamelModel):
    """모델 요청에 인라인으로 첨부하는 바이너리 (base64)."""
    mime_type: str = Field(..., description="MIME 타입 (예: image/png)")
    base64_data: str = Field(..., description="base64 인코딩 데이터")


class NormalizedEvidence(CamelModel):
    """
    정규화된 증거.
    실행 단위로 생성되며 미디어 사전 분석기가 text를 보강한 뒤 오케스트레이터가 읽기 전용으로 사용합니다.
    """
    type: EvidenceType = Field(..., description="증거 유형")
    filename: Optional[str] = Field(None, description="파일 이름")
    url: Optional[str] = Field(None, description="링크 URL")
    text: str = Field(..., description="추출 텍스트 (길이 제한 적용)")
    inline_image: Optional[ContentPart] = Field(None, description="이미지 인라인 데이터")
    keyframe_paths: List[str] = Field(default_factory=list, description="추출된 키프레임 경로")
    audio_path: Optional[str] = Field(None, description="전사 대상 오디오 경로")
    key_facts: List[str] = Field(default_factory=list, description="사전 분석에서 얻은 핵심 사실")
    scratch_dir: Optional[str] = Field(None, exclude=True, description="실행 종료 시 삭제할 임시 디렉터리")

    def display_name(self, index: int) -> str:
        return self.filename or self.url or f"Evidence {index + 1}"


class SearchResult(CamelModel):
    """외부 검색 결과 한 건."""
    title: str = ""
    link: str = ""
    snippet: str = ""
    domain: Optional[str] = None


class AnalysisOptions(CamelModel):
    """분석 실행 옵션."""
    mode: AnalysisMode = Field("normal", description="normal | demo | adversarial")
    scenario_id: Optional[str] = Field(None, description="데모 시나리오 ID")


class AnalysisResult(CamelModel):
    """run_analysis의 반환 값."""
    report: TruthReport
    source: ReportSource
    error: Optional[ReportError] = None


class AdversarialContent(CamelModel):
    """레드팀용 생성 콘텐츠."""
    content: str = ""
    script: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    API 에러 응답 모델.
    """
    success: bool = Field(False, description="성공 여부 (항상 False)")
    error: str = Field(..., description="에러 메시지 요약")
    detail: Optional[str] = Field(None, description="상세 에러 내용 (디버깅용)")
