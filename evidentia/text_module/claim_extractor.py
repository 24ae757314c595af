"""주장 추출 (1단계)"""

import logging
from typing import List, Optional

from ..shared.llm_client import ModelGateway
from ..shared.logger_utils import log_execution
from ..shared.report import Claim
from ..report_module.parser import normalize_claims
from ..resources.prompts import get_claims_extraction_prompt

logger = logging.getLogger(__name__)


class ClaimExtractor:
    """결합된 증거 텍스트에서 원자적이고 검증 가능한 주장을 추출하는 클래스"""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    @log_execution("text", "claims")
    async def extract(self, evidence_text: str) -> Optional[List[Claim]]:
        """
        증거 텍스트에서 주장을 추출합니다.

        Args:
            evidence_text (str): 증거별 헤더가 붙은 결합 텍스트.

        Returns:
            Optional[List[Claim]]: ID가 부여된 주장 목록. 호출이나 파싱이 실패하면 None.
        """
        try:
            prompt = get_claims_extraction_prompt(evidence_text)
            result = await self.gateway.generate_json(prompt)
            if not isinstance(result, dict):
                raise ValueError("주장 추출 응답이 JSON 객체가 아닙니다")

            claims = normalize_claims(result.get("claims"))
            logger.info(f"주장 추출 완료: {len(claims)}개")
            return claims

        except Exception as e:
            logger.error(f"주장 추출 실패: {e}", exc_info=True)
            return None
