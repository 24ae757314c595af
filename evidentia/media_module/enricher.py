"""미디어 사전 분석기 팬아웃"""

import asyncio
import logging
from typing import List

from ..shared.llm_client import ModelGateway
from ..shared.schemas import NormalizedEvidence
from .audio_transcriber import AudioTranscriber
from .image_analyzer import ImageAnalyzer
from .video_analyzer import VideoKeyframeAnalyzer

logger = logging.getLogger(__name__)


class MediaEnricher:
    """
    증거별 미디어 분석을 동시에 실행하고 결과를 증거 텍스트에 병합합니다.

    증거 하나당 별도의 요청을 보내며(배치 없음), 한 분석기의 실패는 다른 증거에 영향을 주지 않습니다.
    """

    def __init__(self, gateway: ModelGateway):
        self.image_analyzer = ImageAnalyzer(gateway)
        self.video_analyzer = VideoKeyframeAnalyzer(gateway)
        self.audio_transcriber = AudioTranscriber(gateway)

    async def enrich(self, items: List[NormalizedEvidence]) -> List[NormalizedEvidence]:
        tasks = [self._enrich_item(item) for item in items]
        await asyncio.gather(*tasks)
        return items

    async def _enrich_item(self, item: NormalizedEvidence) -> None:
        if item.type == "image":
            analysis = await self.image_analyzer.analyze(item)
            if analysis:
                self.image_analyzer.merge(item, analysis)

        elif item.type == "video":
            # 키프레임 요약과 오디오 전사는 서로 독립적이므로 동시에 요청
            analysis, transcript = await asyncio.gather(
                self.video_analyzer.analyze(item),
                self.audio_transcriber.transcribe(item),
            )
            if analysis:
                self.video_analyzer.merge(item, analysis)
            if transcript:
                self.audio_transcriber.merge(item, transcript)

        elif item.type == "audio":
            transcript = await self.audio_transcriber.transcribe(item)
            if transcript:
                self.audio_transcriber.merge(item, transcript)


async def enrich_evidence(items: List[NormalizedEvidence], gateway: ModelGateway) -> List[NormalizedEvidence]:
    """정규화된 증거 목록을 제자리에서 보강합니다."""
    enriched = await MediaEnricher(gateway).enrich(items)
    logger.info(f"미디어 사전 분석 완료: {len(items)}개 증거")
    return enriched
