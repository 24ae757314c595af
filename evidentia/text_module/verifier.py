"""외부 검증 (3단계): 주장별 웹 검색 후 검증 상태와 인용을 매핑"""

import asyncio
import json
import logging
from typing import List, Optional

from ..config import Config
from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.report import Claim, ExternalVerification
from ..shared.schemas import SearchResult
from ..shared.search_client import SearchClient
from ..report_module.parser import parse_verification
from ..resources.prompts import get_citations_summary_prompt

logger = logging.getLogger(__name__)

NOT_CONFIGURED_NOTE = "External verification unavailable (no search API key). Confidence reduced."
NO_CLAIMS_NOTE = "No claims were available for external verification."
FAILED_NOTE = "External verification failed; citations could not be mapped to claims."


class ExternalVerifier:
    """
    검색 제공자가 설정되어 있고 주장이 하나 이상일 때만 동작합니다.

    앞쪽 Config.VERIFY_MAX_CLAIMS개의 주장마다 검색을 한 번씩 동시에 수행하고,
    모든 결과를 한 번의 모델 호출로 Supported/Disputed/NotFound와 인용(1-3개)에 매핑합니다.
    """

    def __init__(self, gateway: ModelGateway, search_client: SearchClient):
        self.gateway = gateway
        self.search_client = search_client
        self.max_claims = Config.VERIFY_MAX_CLAIMS
        self.max_results = Config.SEARCH_MAX_RESULTS

    @property
    def is_available(self) -> bool:
        return self.search_client.is_configured

    @log_execution("text", "external_verification")
    async def verify(self, claims: List[Claim]) -> ExternalVerification:
        """
        주장들을 외부 검색으로 검증합니다.

        Args:
            claims (List[Claim]): 1단계에서 추출한 주장.

        Returns:
            ExternalVerification: 검증 결과. 검색 미설정, 주장 없음, 실패 시 enabled=False.
        """
        if not self.is_available:
            return ExternalVerification(enabled=False, reliability_note=NOT_CONFIGURED_NOTE)
        if not claims:
            return ExternalVerification(enabled=False, reliability_note=NO_CLAIMS_NOTE)

        targets = claims[:self.max_claims]
        search_results = await asyncio.gather(
            *(self.search_client.search(claim.text, self.max_results) for claim in targets)
        )
        logger.info(f"외부 검색 완료: 주장 {len(targets)}개")

        try:
            prompt = get_citations_summary_prompt(
                self._format_claims(targets),
                self._format_search_results(targets, search_results),
            )
            result = await self.gateway.generate_json(prompt)
            per_claim, note = parse_verification(result, targets)
        except Exception as e:
            logger.error(f"검증 요약 실패: {e}", exc_info=True)
            return ExternalVerification(enabled=False, reliability_note=FAILED_NOTE)

        return ExternalVerification(enabled=True, per_claim=per_claim, reliability_note=note)

    @staticmethod
    def _format_claims(claims: List[Claim]) -> str:
        return json.dumps(
            [
                {"claimIndex": idx, "claimId": c.id, "text": c.text, "sourceEvidenceIds": c.source_evidence_ids}
                for idx, c in enumerate(claims)
            ],
            ensure_ascii=False,
        )

    @staticmethod
    def _format_search_results(claims: List[Claim], results: List[Optional[List[SearchResult]]]) -> str:
        blocks = []
        for idx, (claim, claim_results) in enumerate(zip(claims, results)):
            lines = "\n---\n".join(
                f"Title: {r.title}\nLink: {r.link}\nSnippet: {r.snippet}" for r in (claim_results or [])
            )
            blocks.append(
                f"ClaimIndex: {idx}\nClaimId: {claim.id}\nClaim: {claim.text}\nSEARCH RESULTS:\n{lines or '[none]'}"
            )
        return "\n\n====\n\n".join(blocks)
