"""실행 기록(Execution Log) 유틸리티"""

import functools
import inspect
import json
import logging
import time
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict

from ..config import Config

logger = logging.getLogger(__name__)

# 현재 분석 실행 ID (asyncio 태스크마다 컨텍스트가 복사됨)
_current_run_id: ContextVar[str] = ContextVar("evidentia_run_id", default="unknown")

MAX_LOGGED_STRING_CHARS = 2000


def set_run_id(run_id: str) -> None:
    _current_run_id.set(run_id)


def get_run_id() -> str:
    return _current_run_id.get()


def _prepare_for_log(obj: Any) -> Any:
    """pydantic 모델을 dict로 바꾸고 긴 문자열(base64 등)을 잘라냅니다."""
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(by_alias=True)
    if isinstance(obj, dict):
        return {str(k): _prepare_for_log(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_prepare_for_log(v) for v in obj]
    if isinstance(obj, str) and len(obj) > MAX_LOGGED_STRING_CHARS:
        return obj[:MAX_LOGGED_STRING_CHARS] + f"...(truncated {len(obj) - MAX_LOGGED_STRING_CHARS} chars)"
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    return str(obj)


def _capture_inputs(func: Callable, args: tuple, kwargs: dict) -> Dict[str, Any]:
    bound = inspect.signature(func).bind(*args, **kwargs)
    bound.apply_defaults()
    return {name: value for name, value in bound.arguments.items() if name != "self"}


def log_execution(module_name: str, step_name: str):
    """
    파이프라인 단계의 입력, 출력, 소요 시간을 실행별 JSON Lines 파일에 기록하는 데코레이터.

    기록에는 증거 원문이 포함되므로 Config.EXECUTION_LOG_ENABLED가 True일 때만 저장합니다.
    예외는 기록한 뒤 그대로 다시 발생시킵니다.

    Args:
        module_name: 모듈 이름 (media, text 등)
        step_name: 단계 이름 (claims, report_synthesis 등)
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not Config.EXECUTION_LOG_ENABLED:
                return await func(*args, **kwargs)

            entry = {
                "timestamp": datetime.now().isoformat(timespec="seconds"),
                "run_id": get_run_id(),
                "module": module_name,
                "step": step_name,
                "function": func.__qualname__,
                "inputs": _prepare_for_log(_capture_inputs(func, args, kwargs)),
            }
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                entry["status"] = "error"
                entry["error"] = f"{type(e).__name__}: {e}"
                raise
            else:
                entry["status"] = "success"
                entry["outputs"] = _prepare_for_log(result)
                return result
            finally:
                entry.setdefault("status", "cancelled")
                entry["execution_time_ms"] = round((time.perf_counter() - started) * 1000, 1)
                _append_entry(entry)

        return wrapper
    return decorator


def get_log_path(run_id: str) -> Path:
    return Path(Config.LOG_DIR) / f"{run_id}_{datetime.now():%Y%m%d}.jsonl"


def _append_entry(entry: dict) -> None:
    """실행 기록 한 줄을 추가합니다. 디스크 오류는 분석을 막지 않도록 경고만 남깁니다."""
    path = get_log_path(entry["run_id"])
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        logger.warning(f"실행 로그 저장 실패 ({path}): {e}")
