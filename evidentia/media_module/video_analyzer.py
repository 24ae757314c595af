"""영상 키프레임 사전 분석"""

import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import Config
from ..evidence_module.extractors import read_file_base64
from ..resources.prompts import VIDEO_KEYFRAMES_PROMPT
from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.schemas import ContentPart, NormalizedEvidence
from .image_analyzer import clean_signal_list

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 700


class VideoAnalysis(BaseModel):
    summary: str = Field("", description="프레임 전반의 내용 요약")
    manipulation_signals: List[str] = Field(default_factory=list, description="프레임 간 불일치, 편집 흔적 등")


def select_keyframes(paths: List[str], max_frames: int) -> List[str]:
    """
    시간적 분포를 유지하도록 일정 간격(stride)으로 키프레임을 고릅니다.

    단순히 앞부분을 자르지 않고 stride = max(1, len // max_frames) 간격으로 최대 max_frames개를 선택합니다.

    Args:
        paths (List[str]): 시간순으로 정렬된 키프레임 경로.
        max_frames (int): 최대 선택 개수.

    Returns:
        List[str]: 선택된 키프레임 경로.
    """
    if len(paths) <= max_frames:
        return list(paths)
    step = max(1, len(paths) // max_frames)
    return paths[::step][:max_frames]


class VideoKeyframeAnalyzer:
    """선택된 키프레임을 하나의 멀티파트 요청으로 보내 영상 요약을 얻습니다."""

    def __init__(self, gateway: ModelGateway, max_frames: Optional[int] = None):
        self.gateway = gateway
        self.max_frames = max_frames if max_frames else Config.MAX_KEYFRAMES_PER_VIDEO

    def _load_parts(self, paths: List[str]) -> List[ContentPart]:
        parts = []
        for path in paths:
            if not os.path.exists(path):
                continue
            parts.append(ContentPart(mime_type="image/jpeg", base64_data=read_file_base64(path)))
        return parts

    @log_execution("media", "video_keyframes")
    async def analyze(self, item: NormalizedEvidence) -> Optional[VideoAnalysis]:
        if item.type != "video" or not item.keyframe_paths:
            return None

        try:
            parts = self._load_parts(select_keyframes(item.keyframe_paths, self.max_frames))
            if not parts:
                logger.warning(f"읽을 수 있는 키프레임 없음 ({item.filename})")
                return None

            result = await self.gateway.generate_json(VIDEO_KEYFRAMES_PROMPT, parts=parts)
            if not isinstance(result, dict):
                raise ValueError("키프레임 분석 응답이 JSON 객체가 아닙니다")

            return VideoAnalysis(
                summary=str(result.get("summary") or "").strip()[:SUMMARY_MAX_CHARS],
                manipulation_signals=clean_signal_list(result.get("manipulationSignals")),
            )
        except Exception as e:
            logger.error(f"키프레임 분석 실패 ({item.filename}): {e}")
            return None

    @staticmethod
    def merge(item: NormalizedEvidence, analysis: VideoAnalysis) -> None:
        if not analysis.summary:
            return
        sections = [item.text, f"[Video keyframes summary]\n{analysis.summary}"]
        if analysis.manipulation_signals:
            sections.append("[Video manipulation signals]\n- " + "\n- ".join(analysis.manipulation_signals))
        item.text = "\n\n".join(sections)
        item.key_facts.append(analysis.summary)
