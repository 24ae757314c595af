"""Evidentia Backend API"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import Config
from .evidence_module.extractors import extract_text_from_html, fetch_url_html
from .evidence_module.normalizer import LINK_EMPTY_PLACEHOLDER
from .pipeline.orchestrator import get_status, run_analysis
from .resources.demo_scenarios import DEMO_SCENARIOS, get_demo_scenario
from .shared.errors import AnalysisTimeoutError, InvalidInputError
from .shared.llm_client import ModelGateway
from .shared.schemas import (
    AnalysisMode,
    AnalysisOptions,
    CamelModel,
    ErrorResponse,
    EvidenceInput,
    FILE_EVIDENCE_TYPES,
)
from .shared.search_client import SearchClient
from .text_module.adversarial import generate_adversarial_content

# 환경 변수 로드
load_dotenv()

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

FETCH_FAILED_PLACEHOLDER = "[Failed to fetch URL]"

app = FastAPI(
    title="Evidentia Analysis Server",
    description="Multimodal evidence analysis API (Truth Report)",
    version="1.0.0"
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 백엔드 클라이언트 (프로세스 수명 동안 유지, 실행마다 명시적으로 전달)
gateway = ModelGateway.from_config()
search_client = SearchClient.from_config()

for problem in Config.validate_config():
    logger.warning(f"설정 확인 필요: {problem}")


class AnalyzeRequest(CamelModel):
    """POST /api/analyze 요청 본문"""
    inputs: List[EvidenceInput] = Field(default_factory=list)
    mode: AnalysisMode = "normal"
    scenario_id: Optional[str] = None


class FetchRequest(BaseModel):
    url: str = ""


class AdversarialRequest(BaseModel):
    template: str = ""


def _error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def resolve_upload_path(location_ref: str) -> Path:
    """업로드 키를 UPLOAD_DIR 안의 경로로 변환합니다 (디렉터리 이탈 방지를 위해 파일 이름만 사용)."""
    return Config.UPLOAD_DIR / Path(location_ref).name


async def _prepare_input(evidence: EvidenceInput) -> EvidenceInput:
    """링크는 HTML을 미리 가져오고, 파일은 업로드 디렉터리 경로로 바꿉니다."""
    if evidence.type == "link" and evidence.url and not evidence.raw_text:
        try:
            html = await asyncio.to_thread(fetch_url_html, evidence.url)
        except Exception as e:
            logger.warning(f"URL 가져오기 실패 ({evidence.url}): {e}")
            html = FETCH_FAILED_PLACEHOLDER
        return evidence.model_copy(update={"raw_text": html})

    if evidence.type in FILE_EVIDENCE_TYPES:
        path = resolve_upload_path(evidence.location_ref)
        return evidence.model_copy(update={"location_ref": str(path)})

    return evidence


def _delete_uploads(inputs: List[EvidenceInput]):
    for evidence in inputs:
        if evidence.type not in FILE_EVIDENCE_TYPES or not evidence.location_ref:
            continue
        try:
            if os.path.exists(evidence.location_ref):
                os.remove(evidence.location_ref)
        except OSError as e:
            logger.warning(f"업로드 파일 삭제 실패 ({evidence.location_ref}): {e}")


@app.post("/api/upload")
async def upload_file(file: UploadFile = File(...), evidence_type: str = Form("file", alias="type")):
    """
    증거 파일을 업로드합니다.

    Args:
        file (UploadFile): 업로드 파일.
        evidence_type (str): 클라이언트가 지정한 증거 유형 (폼 필드 "type").

    Returns:
        dict: 분석 요청의 locationRef로 쓸 key와 원본 파일 이름.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    safe_name = "".join(c if c.isalnum() or c in ".-" else "_" for c in file.filename)
    key = f"{int(time.time() * 1000)}-{safe_name}"
    Config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    contents = await file.read()
    (Config.UPLOAD_DIR / key).write_bytes(contents)

    logger.info(f"파일 업로드 완료: {key} ({len(contents)} bytes)")
    return {"ok": True, "key": key, "filename": file.filename, "type": evidence_type}


@app.post("/api/analyze")
async def analyze(request: AnalyzeRequest):
    """
    증거 목록을 분석하여 Truth Report를 반환합니다.

    inputs가 비어 있고 scenarioId가 데모 시나리오와 일치하면 시나리오 페이로드를 사용합니다.
    업로드된 파일은 분석이 끝나면 삭제됩니다.

    Args:
        request (AnalyzeRequest): 증거 목록, 실행 모드, 데모 시나리오 ID.

    Returns:
        dict: camelCase 직렬화된 {report, source, error}.
            입력이 비어 있으면 400, 시간 초과면 504, 그 외 실패는 500 (ErrorResponse).
    """
    inputs = request.inputs
    if not inputs and request.scenario_id:
        scenario = get_demo_scenario(request.scenario_id)
        if scenario:
            inputs = scenario.payload

    prepared: List[EvidenceInput] = []
    try:
        prepared = list(await asyncio.gather(*(_prepare_input(ev) for ev in inputs)))
        options = AnalysisOptions(mode=request.mode, scenario_id=request.scenario_id)
        result = await run_analysis(prepared, options, gateway=gateway, search=search_client)
        logger.info(
            f"분석 응답: source={result.source}, error={result.error.code if result.error else None}"
        )
        return result.model_dump(by_alias=True)

    except InvalidInputError as e:
        return _error_response(400, "At least one evidence input required", str(e))
    except AnalysisTimeoutError as e:
        return _error_response(504, "Analysis timed out", str(e))
    except Exception as e:
        logger.error(f"분석 중 오류 발생: {e}", exc_info=True)
        return _error_response(500, "Analysis failed", str(e))
    finally:
        _delete_uploads(prepared)


@app.get("/api/status")
async def status():
    """모델/검색 백엔드 설정 여부 (불리언만 반환)."""
    return get_status(gateway, search_client)


@app.post("/api/fetch")
async def fetch_url(request: FetchRequest):
    """URL의 본문 텍스트를 가져옵니다 (미리보기용)."""
    if not request.url:
        return _error_response(400, "URL required")
    try:
        html = await asyncio.to_thread(fetch_url_html, request.url)
    except Exception as e:
        logger.error(f"URL 가져오기 실패: {e}")
        return _error_response(500, "Failed to fetch URL", str(e))

    text = extract_text_from_html(html)
    return {"ok": True, "url": request.url, "text": text or LINK_EMPTY_PLACEHOLDER}


@app.get("/api/demo/scenarios")
async def demo_scenarios():
    return [scenario.model_dump(by_alias=True) for scenario in DEMO_SCENARIOS]


@app.post("/api/adversarial/generate")
async def adversarial_generate(request: AdversarialRequest):
    """레드팀 테스트용 적대적 콘텐츠를 생성합니다."""
    if not request.template.strip():
        return _error_response(400, "template required")
    try:
        content = await generate_adversarial_content(request.template, gateway)
    except Exception as e:
        logger.error(f"적대적 콘텐츠 생성 실패: {e}", exc_info=True)
        return _error_response(500, "Generation failed", str(e))
    return content.model_dump(by_alias=True, exclude_none=True)


if __name__ == "__main__":
    import uvicorn
    Config.print_config()
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
