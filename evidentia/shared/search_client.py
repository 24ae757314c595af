"""외부 웹 검색 클라이언트 (Tavily / SerpAPI)"""

import logging
import asyncio
from typing import List, Dict, Any, Optional
from urllib.parse import urlparse

import requests
from tavily import TavilyClient

from ..config import Config
from .schemas import SearchResult

logger = logging.getLogger(__name__)

SERPAPI_ENDPOINT = "https://serpapi.com/search"


def extract_domain(url: str) -> str:
    """
    URL에서 도메인을 추출합니다.

    Args:
        url (str): 분석할 URL.

    Returns:
        str: 추출된 도메인 (예: reuters.com). 추출 실패 시 빈 문자열.
    """
    try:
        domain = urlparse(url).netloc.lower()
        if domain.startswith('www.'):
            domain = domain[4:]
        return domain
    except ValueError:
        return ""


class SearchClient:
    """
    설정된 검색 제공자 하나를 감싸는 클라이언트.

    제공자가 설정되지 않았거나 호출이 실패하면 search()는 None을 반환합니다.
    """

    def __init__(self, provider: str = "none", api_key: str = ""):
        self.provider = provider
        self.api_key = api_key
        self.max_results = Config.SEARCH_MAX_RESULTS
        self.snippet_max_chars = Config.SEARCH_SNIPPET_MAX_CHARS

        self._tavily: Optional[TavilyClient] = None
        if self.provider == "tavily" and self.api_key:
            self._tavily = TavilyClient(api_key=self.api_key)

    @classmethod
    def from_config(cls) -> "SearchClient":
        if Config.SEARCH_API_PROVIDER == "tavily":
            return cls("tavily", Config.TAVILY_API_KEY)
        if Config.SEARCH_API_PROVIDER == "serpapi":
            return cls("serpapi", Config.SEARCH_API_KEY)
        return cls("none", "")

    @property
    def is_configured(self) -> bool:
        return self.provider in ("tavily", "serpapi") and bool(self.api_key)

    async def search(self, query: str, num: Optional[int] = None) -> Optional[List[SearchResult]]:
        """
        검색을 수행합니다.

        Args:
            query (str): 검색어.
            num (Optional[int]): 최대 결과 수 (기본값: Config.SEARCH_MAX_RESULTS).

        Returns:
            Optional[List[SearchResult]]: 순서가 유지된 결과 목록. 미설정 또는 실패 시 None.
        """
        if not self.is_configured:
            return None

        limit = num if num else self.max_results
        try:
            # 검색 SDK/HTTP 호출은 Blocking I/O이므로 스레드에서 실행
            if self.provider == "tavily":
                raw_results = await asyncio.to_thread(self._search_tavily, query, limit)
            else:
                raw_results = await asyncio.to_thread(self._search_serpapi, query, limit)
        except Exception as e:
            logger.error(f"웹 검색 실패 ({self.provider}): {e}", exc_info=True)
            return None

        results = [self._to_result(item) for item in raw_results[:limit]]
        logger.info(f"웹 검색 완료: '{query[:50]}' -> {len(results)}개 결과")
        return results

    def _search_tavily(self, query: str, limit: int) -> List[Dict[str, Any]]:
        response = self._tavily.search(
            query=query,
            search_depth="basic",
            max_results=limit,
        )
        return [
            {"title": r.get("title", ""), "link": r.get("url", ""), "snippet": r.get("content", "")}
            for r in response.get("results", [])
        ]

    def _search_serpapi(self, query: str, limit: int) -> List[Dict[str, Any]]:
        response = requests.get(
            SERPAPI_ENDPOINT,
            params={"q": query, "api_key": self.api_key, "num": limit},
            timeout=Config.FETCH_TIMEOUT_SEC,
        )
        response.raise_for_status()
        return [
            {"title": r.get("title", ""), "link": r.get("link", ""), "snippet": r.get("snippet", "")}
            for r in response.json().get("organic_results", [])
        ]

    def _to_result(self, item: Dict[str, Any]) -> SearchResult:
        link = item.get("link") or ""
        return SearchResult(
            title=item.get("title") or "",
            link=link,
            snippet=(item.get("snippet") or "")[:self.snippet_max_chars],
            domain=extract_domain(link) if link else None,
        )
