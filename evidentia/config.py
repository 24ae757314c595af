"""
Evidentia Truth Engine 설정
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

class Config:
    """서버 설정 관리"""

    # 1. 서버 기본 설정
    HOST = os.getenv("SERVER_HOST", "0.0.0.0")
    PORT = int(os.getenv("SERVER_PORT", "8000"))
    BASE_DIR = Path(__file__).parent
    UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR.parent / "uploads")))

    # 2. CORS 설정
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # 3. 모델 백엔드 (OpenAI) 설정
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o")
    LLM_AUDIO_MODEL = os.getenv("LLM_AUDIO_MODEL", "gpt-4o-audio-preview")
    LLM_TEMPERATURE = 0.1
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))

    # 재시도 정책
    LLM_MAX_ATTEMPTS = 3
    LLM_RETRY_MAX_WAIT_SEC = 60.0
    LLM_BACKOFF_BASE_SEC = 1.0

    # 4. 외부 검색 설정 (tavily | serpapi | none)
    SEARCH_API_PROVIDER = os.getenv("SEARCH_API_PROVIDER", "none").lower()
    TAVILY_API_KEY = os.getenv("TAVILY_API_KEY", "") or os.getenv("SEARCH_API_KEY", "")
    SEARCH_API_KEY = os.getenv("SEARCH_API_KEY", "")
    SEARCH_MAX_RESULTS = 5
    SEARCH_SNIPPET_MAX_CHARS = 200
    VERIFY_MAX_CLAIMS = 6

    # 5. 증거 정규화 설정
    TEXT_MAX_CHARS = 100_000
    LINK_MAX_CHARS = 50_000
    TRANSCRIPT_MAX_CHARS = 20_000
    LEDGER_PREVIEW_CHARS = 300
    KEYFRAME_INTERVAL_SEC = 5
    MAX_KEYFRAMES_PER_VIDEO = 8
    FFMPEG_TIMEOUT_SEC = 60

    # 6. 링크 가져오기
    FETCH_TIMEOUT_SEC = 10
    FETCH_USER_AGENT = os.getenv("FETCH_USER_AGENT", "EvidentiaBot/1.0")

    # 7. 파이프라인 전체 시간 제한 (초)
    ANALYSIS_TIMEOUT_SEC = float(os.getenv("ANALYSIS_TIMEOUT_SEC", "60"))

    # 8. 보정(Calibration) 임계값
    CALIBRATION_NO_VERIFICATION_CAP = 65
    CALIBRATION_CHECKABLE_RATIO_MIN = 0.3
    CALIBRATION_LOW_CHECKABLE_CAP = 55
    CALIBRATION_MIN_CITED_CLAIMS = 3
    CALIBRATION_DISPUTED_RATIO_MIN = 0.6
    CALIBRATION_HIGH_SIGNAL = 70
    CALIBRATION_MANIPULATED_FLOOR = 65
    CALIBRATION_DISPUTED_FLOOR = 55
    CALIBRATION_MANIPULATED_MIN = 55

    # 9. 실행 로그 (증거 원문이 기록되므로 기본 비활성)
    EXECUTION_LOG_ENABLED = os.getenv("EXECUTION_LOG_ENABLED", "false").lower() == "true"
    LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR.parent / "logs")))

    @classmethod
    def is_model_configured(cls) -> bool:
        return bool(cls.OPENAI_API_KEY)

    @classmethod
    def is_search_configured(cls) -> bool:
        if cls.SEARCH_API_PROVIDER == "tavily":
            return bool(cls.TAVILY_API_KEY)
        if cls.SEARCH_API_PROVIDER == "serpapi":
            return bool(cls.SEARCH_API_KEY)
        return False

    @classmethod
    def validate_config(cls):
        """서버 필수 설정 검증"""
        errors = []
        if not cls.OPENAI_API_KEY: errors.append("OPENAI_API_KEY Missing (demo mode)")
        if cls.SEARCH_API_PROVIDER not in ("none", "tavily", "serpapi"):
            errors.append(f"Unknown SEARCH_API_PROVIDER: {cls.SEARCH_API_PROVIDER}")
        elif cls.SEARCH_API_PROVIDER != "none" and not cls.is_search_configured():
            errors.append(f"{cls.SEARCH_API_PROVIDER} API key Missing")
        return errors

    @classmethod
    def print_config(cls):
        print("="*70)
        print("Evidentia Truth Engine Configured")
        print(f"  model: {cls.LLM_MODEL} ({'configured' if cls.is_model_configured() else 'not configured'})")
        print(f"  search: {cls.SEARCH_API_PROVIDER} ({'configured' if cls.is_search_configured() else 'not configured'})")
        print("="*70)
