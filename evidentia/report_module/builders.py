"""정규화된 증거로부터 결정적으로 만들 수 있는 리포트 구성 요소"""

from typing import List, Optional

from ..config import Config
from ..shared.report import EvidenceLedgerEntry, TimelineEvent
from ..shared.schemas import NormalizedEvidence


def evidence_id(index: int) -> str:
    return f"e{index + 1}"


def relative_time_label(index: int) -> str:
    return "T0" if index == 0 else f"T0+{index}"


def build_evidence_ledger(
    items: List[NormalizedEvidence],
    default_key_facts: Optional[List[str]] = None,
    preview_chars: Optional[int] = None
) -> List[EvidenceLedgerEntry]:
    """
    증거 목록에서 위치 기반 ID(e1, e2, ...)를 갖는 증거 원장을 만듭니다.

    Args:
        items (List[NormalizedEvidence]): 정규화된 증거.
        default_key_facts (Optional[List[str]]): 사전 분석 결과가 없을 때 쓸 핵심 사실.
        preview_chars (Optional[int]): 텍스트 미리보기 길이 (기본값: Config.LEDGER_PREVIEW_CHARS).

    Returns:
        List[EvidenceLedgerEntry]: 입력 순서와 같은 순서의 원장.
    """
    limit = preview_chars if preview_chars else Config.LEDGER_PREVIEW_CHARS
    ledger = []
    for idx, item in enumerate(items):
        metadata = {k: v for k, v in (("filename", item.filename), ("url", item.url)) if v}
        ledger.append(EvidenceLedgerEntry(
            id=evidence_id(idx),
            type=item.type,
            name=item.display_name(idx),
            key_facts=list(item.key_facts) or list(default_key_facts or []),
            extracted_text_preview=item.text[:limit],
            metadata=metadata or None,
        ))
    return ledger


def build_inferred_timeline(items: List[NormalizedEvidence]) -> List[TimelineEvent]:
    """시간 정보를 알 수 없을 때 증거 제출 순서로 추정 타임라인(T0, T0+1, ...)을 만듭니다."""
    return [
        TimelineEvent(
            t=relative_time_label(idx),
            label=f"Evidence submitted: {item.display_name(idx)} ({item.type})",
            source_ids=[evidence_id(idx)],
            inferred=True,
        )
        for idx, item in enumerate(items)
    ]


def inferred_timeline_confidence(items: List[NormalizedEvidence]) -> int:
    return 55 if len(items) > 1 else 35


def describe_analyzed(items: List[NormalizedEvidence]) -> List[str]:
    return [f"{item.type}: {item.filename or item.url or 'pasted'}" for item in items]
