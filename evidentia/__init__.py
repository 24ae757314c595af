"""
Evidentia 증거 분석 서버 패키지
"""

from .main import app
from .config import Config
from .pipeline.orchestrator import run_analysis, get_status

__version__ = "1.0.0"
__all__ = ["app", "Config", "run_analysis", "get_status"]
