"""파이프라인 예외 정의"""

from typing import Optional


class EvidentiaError(Exception):
    """Evidentia 파이프라인 예외의 기본 클래스."""


class ModelNotConfiguredError(EvidentiaError):
    """모델 백엔드 자격 증명이 없는 경우 (재시도 대상 아님)."""

    def __init__(self, message: str = "OPENAI_API_KEY not configured"):
        super().__init__(message)


class EmptyResponseError(EvidentiaError):
    """모델이 빈 응답을 반환한 경우 (재시도 대상)."""

    def __init__(self, message: str = "Empty response"):
        super().__init__(message)


class ReportValidationError(EvidentiaError):
    """합성된 리포트가 스키마 검증을 통과하지 못한 경우."""


class InvalidInputError(EvidentiaError, ValueError):
    """분석 요청 입력이 잘못된 경우 (예: 증거 목록이 비어 있음)."""


class AnalysisTimeoutError(EvidentiaError):
    """전체 분석 시간 제한을 초과한 경우."""

    def __init__(self, timeout_sec: float):
        super().__init__(f"Analysis exceeded {timeout_sec:.0f}s time budget")
        self.timeout_sec = timeout_sec


def get_error_status_code(error: BaseException) -> Optional[int]:
    """
    예외 객체에서 HTTP 상태 코드를 추출합니다.

    openai.APIStatusError는 status_code를, 그 외 HTTP 클라이언트 예외는
    response.status_code 또는 status 속성을 가집니다.

    Args:
        error (BaseException): 검사할 예외.

    Returns:
        Optional[int]: 상태 코드. 없으면 None.
    """
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value

    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None
