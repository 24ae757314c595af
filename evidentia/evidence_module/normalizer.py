"""증거 정규화"""

import logging
import os
import shutil
import tempfile
from typing import Iterable, Optional

from ..config import Config
from ..shared.schemas import EvidenceInput, NormalizedEvidence
from . import extractors

logger = logging.getLogger(__name__)

LINK_EMPTY_PLACEHOLDER = "[Could not extract main content]"
IMAGE_PLACEHOLDER = "[Image provided]"
IMAGE_UNREADABLE_PLACEHOLDER = "[Image file provided but could not be read]"
PDF_MISSING_PLACEHOLDER = "[PDF file not found]"


def normalize_evidence(
    evidence: EvidenceInput,
    scratch_root: Optional[str] = None,
    deadline: Optional[float] = None
) -> NormalizedEvidence:
    """
    EvidenceInput 하나를 NormalizedEvidence 하나로 변환합니다.

    추출기 실패는 예외 대신 안내 문구로 대체되며, 호출자의 파일은 삭제하지 않습니다.
    영상의 키프레임/오디오는 scratch_root 아래 임시 디렉터리(scratch_dir)에 저장됩니다.

    Args:
        evidence (EvidenceInput): 원본 증거.
        scratch_root (Optional[str]): 실행 전용 임시 루트 (None이면 시스템 임시 디렉터리).
        deadline (Optional[float]): ffmpeg 실행 마감 시각 (time.monotonic 기준).

    Returns:
        NormalizedEvidence: 정규화된 증거.
    """
    if evidence.type == "text":
        return NormalizedEvidence(type="text", text=(evidence.raw_text or "")[:Config.TEXT_MAX_CHARS])
    if evidence.type == "link":
        return _normalize_link(evidence)
    if evidence.type == "pdf":
        return _normalize_pdf(evidence)
    if evidence.type == "image":
        return _normalize_image(evidence)
    if evidence.type == "audio":
        return _normalize_audio(evidence)
    return _normalize_video(evidence, scratch_root, deadline)


def _filename(evidence: EvidenceInput) -> str:
    return os.path.basename(evidence.location_ref or "")


def _normalize_link(evidence: EvidenceInput) -> NormalizedEvidence:
    text = extractors.extract_text_from_html(evidence.raw_text or "")
    return NormalizedEvidence(type="link", url=evidence.url, text=text or LINK_EMPTY_PLACEHOLDER)


def _normalize_pdf(evidence: EvidenceInput) -> NormalizedEvidence:
    path = evidence.location_ref
    if not os.path.exists(path):
        logger.warning(f"PDF 파일 없음: {path}")
        text = PDF_MISSING_PLACEHOLDER
    else:
        text = extractors.extract_text_from_pdf(path)
    return NormalizedEvidence(type="pdf", filename=_filename(evidence), text=text[:Config.TEXT_MAX_CHARS])


def _normalize_image(evidence: EvidenceInput) -> NormalizedEvidence:
    try:
        part = extractors.image_to_content_part(evidence.location_ref)
    except OSError as e:
        logger.error(f"이미지 읽기 실패 ({evidence.location_ref}): {e}")
        return NormalizedEvidence(type="image", filename=_filename(evidence), text=IMAGE_UNREADABLE_PLACEHOLDER)
    return NormalizedEvidence(type="image", filename=_filename(evidence), text=IMAGE_PLACEHOLDER, inline_image=part)


def _normalize_audio(evidence: EvidenceInput) -> NormalizedEvidence:
    path = evidence.location_ref
    has_audio = os.path.exists(path)
    return NormalizedEvidence(
        type="audio",
        filename=_filename(evidence),
        text=extractors.get_audio_placeholder_text(has_audio),
        audio_path=path if has_audio else None,
    )


def _normalize_video(
    evidence: EvidenceInput,
    scratch_root: Optional[str],
    deadline: Optional[float]
) -> NormalizedEvidence:
    path = evidence.location_ref
    if not os.path.exists(path) or not extractors.is_ffmpeg_available():
        logger.info(f"영상 키프레임 추출 생략 (ffmpeg 또는 파일 없음): {path}")
        return NormalizedEvidence(
            type="video",
            filename=_filename(evidence),
            text=extractors.get_video_placeholder_text(0),
        )

    scratch_dir = tempfile.mkdtemp(prefix="evidentia_video_", dir=scratch_root)
    frames = extractors.extract_video_keyframes(path, scratch_dir, deadline)
    audio_path = extractors.extract_video_audio(path, scratch_dir, deadline)
    logger.info(f"영상 정규화 완료: 키프레임 {len(frames)}개, 오디오 {'있음' if audio_path else '없음'}")

    return NormalizedEvidence(
        type="video",
        filename=_filename(evidence),
        text=extractors.get_video_placeholder_text(len(frames)),
        keyframe_paths=frames,
        audio_path=audio_path,
        scratch_dir=scratch_dir,
    )


def combine_evidence_text(items: Iterable[NormalizedEvidence]) -> str:
    """모든 증거 텍스트를 증거별 헤더와 함께 하나로 합칩니다."""
    blocks = []
    for idx, item in enumerate(items):
        label = f"{item.type}: {item.filename}" if item.filename else item.type
        blocks.append(f"--- Evidence e{idx + 1} ({label}) ---\n{item.text}")
    return "\n\n".join(blocks)


def create_scratch_root() -> str:
    return tempfile.mkdtemp(prefix="evidentia_run_")


def cleanup_scratch(scratch_root: str) -> None:
    """
    실행 전용 임시 루트와 그 아래 영상 임시 디렉터리(키프레임, 추출 오디오)를 삭제합니다.

    정규화가 끝나지 않은 채 실행이 취소되어도 루트 단위로 지우므로 남는 파일이 없습니다.
    """
    shutil.rmtree(scratch_root, ignore_errors=True)
    logger.debug(f"임시 디렉터리 삭제: {scratch_root}")
