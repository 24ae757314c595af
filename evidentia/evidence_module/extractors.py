"""
증거 원본에서 텍스트/미디어를 추출하는 유틸리티.
HTML(BeautifulSoup), PDF(PyMuPDF), 이미지(base64), 영상(ffmpeg)을 다룹니다.
"""

import base64
import logging
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import List, Optional

import fitz
import requests
from bs4 import BeautifulSoup

from ..config import Config
from ..shared.schemas import ContentPart

logger = logging.getLogger(__name__)

PDF_FAILED_PLACEHOLDER = "[PDF extraction failed - file may be scanned/image-based]"
PDF_EMPTY_PLACEHOLDER = "[No text extracted from PDF]"

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


def fetch_url_html(url: str) -> str:
    """
    링크의 HTML을 가져옵니다 (HTTP 계층에서 분석 전에 호출).

    Raises:
        requests.RequestException: 요청 실패 또는 HTTP 에러 상태.
    """
    response = requests.get(
        url,
        headers={"User-Agent": Config.FETCH_USER_AGENT},
        timeout=Config.FETCH_TIMEOUT_SEC,
    )
    response.raise_for_status()
    return response.text


def extract_text_from_html(html: str) -> str:
    """
    HTML에서 본문 텍스트를 추출합니다.

    script/style 블록을 제거하고 body가 있으면 body만 사용합니다.
    엔티티는 디코딩되고 공백은 하나로 합쳐집니다.

    Args:
        html (str): HTML 원문 (일반 텍스트여도 됨).

    Returns:
        str: 추출 텍스트 (최대 Config.LINK_MAX_CHARS자). 내용이 없으면 빈 문자열.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()

    root = soup.body if soup.body is not None else soup
    text = " ".join(root.get_text(" ").split())
    return text[:Config.LINK_MAX_CHARS]


def extract_text_from_pdf(file_path: str) -> str:
    """
    PDF의 텍스트 레이어를 추출합니다. 실패해도 예외를 던지지 않고 안내 문구를 반환합니다.
    """
    try:
        with fitz.open(file_path) as doc:
            text = "\n".join(page.get_text() for page in doc).strip()
    except Exception as e:
        logger.error(f"PDF 텍스트 추출 실패 ({file_path}): {e}")
        return PDF_FAILED_PLACEHOLDER
    return text or PDF_EMPTY_PLACEHOLDER


def guess_image_mime_type(file_path: str) -> str:
    return IMAGE_MIME_TYPES.get(Path(file_path).suffix.lower(), DEFAULT_IMAGE_MIME_TYPE)


def read_file_base64(file_path: str) -> str:
    with open(file_path, "rb") as f:
        return base64.b64encode(f.read()).decode("ascii")


def image_to_content_part(file_path: str) -> ContentPart:
    """
    이미지 파일을 base64 ContentPart로 읽습니다.

    Raises:
        OSError: 파일을 읽을 수 없는 경우.
    """
    return ContentPart(mime_type=guess_image_mime_type(file_path), base64_data=read_file_base64(file_path))


def is_ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


def _run_ffmpeg(args: List[str], deadline: Optional[float] = None) -> None:
    """
    ffmpeg를 실행합니다. deadline(time.monotonic 기준)이 주어지면 남은 시간을 넘지 않도록 제한하며,
    시간이 초과되면 subprocess.run이 자식 프로세스를 종료합니다.

    Raises:
        subprocess.TimeoutExpired: 제한 시간 초과 또는 deadline이 이미 지난 경우.
        subprocess.CalledProcessError: ffmpeg 비정상 종료.
    """
    command = ["ffmpeg", "-y", "-loglevel", "error", *args]
    timeout = Config.FFMPEG_TIMEOUT_SEC
    if deadline is not None:
        timeout = min(timeout, deadline - time.monotonic())
        if timeout <= 0:
            raise subprocess.TimeoutExpired(command, 0)

    subprocess.run(
        command,
        check=True,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        timeout=timeout,
    )


def extract_video_keyframes(file_path: str, out_dir: str, deadline: Optional[float] = None) -> List[str]:
    """
    영상에서 일정 간격(Config.KEYFRAME_INTERVAL_SEC)으로 JPEG 키프레임을 추출합니다.

    Args:
        file_path (str): 영상 경로.
        out_dir (str): 키프레임 저장 디렉터리 (이미 존재해야 함).
        deadline (Optional[float]): 분석 실행 마감 시각 (time.monotonic 기준).

    Returns:
        List[str]: 정렬된 키프레임 경로 목록. ffmpeg가 없거나 실패하면 빈 리스트.
    """
    if not os.path.exists(file_path) or not is_ffmpeg_available():
        return []

    try:
        pattern = os.path.join(out_dir, "frame_%04d.jpg")
        _run_ffmpeg([
            "-i", file_path,
            "-vf", f"fps=1/{Config.KEYFRAME_INTERVAL_SEC}",
            "-q:v", "2",
            pattern,
        ], deadline)
    except (subprocess.SubprocessError, OSError) as e:
        logger.error(f"키프레임 추출 실패 ({file_path}): {e}")
        return []

    return sorted(str(p) for p in Path(out_dir).glob("frame_*.jpg"))


def extract_video_audio(file_path: str, out_dir: str, deadline: Optional[float] = None) -> Optional[str]:
    """
    영상에서 모노 16kHz 오디오(mp3)를 추출합니다.

    Returns:
        Optional[str]: 오디오 경로. ffmpeg가 없거나 결과가 비어 있으면 None.
    """
    if not os.path.exists(file_path) or not is_ffmpeg_available():
        return None

    audio_path = os.path.join(out_dir, "audio.mp3")
    try:
        _run_ffmpeg([
            "-i", file_path,
            "-vn", "-ac", "1", "-ar", "16000", "-b:a", "64k",
            audio_path,
        ], deadline)
    except (subprocess.SubprocessError, OSError) as e:
        # 오디오 트랙이 없는 영상도 여기로 옴
        logger.warning(f"영상 오디오 추출 실패 ({file_path}): {e}")
        return None

    if os.path.exists(audio_path) and os.path.getsize(audio_path) > 0:
        return audio_path
    return None


def get_video_placeholder_text(keyframe_count: int) -> str:
    if keyframe_count > 0:
        return f"[Video provided. {keyframe_count} keyframe(s) extracted for analysis.]"
    return (
        "[Video file provided. Keyframe extraction not available (install ffmpeg for full analysis). "
        "Analysis will use metadata.]"
    )


def get_audio_placeholder_text(has_audio: bool) -> str:
    if has_audio:
        return "[Audio file provided. Transcript will be added if transcription succeeds.]"
    return "[Audio file provided. Audio extraction not supported for this file; analysis will use metadata.]"
