"""Tavily search provider.

Tavily returns extracted page content and a relevance score per result, which is
what the perspective agent and the research tools rank on.
"""

from typing import Any

from models.search_models import ImageResult, ProviderResponse, SearchResult
from utils.logger import get_logger

from .base_provider import BaseSearchProvider
from .normalize import sanitize_content

logger = get_logger(__name__)

DEFAULT_SCORE = 0.5


def parse_tavily_response(response: dict[str, Any]) -> ProviderResponse:
    web = []
    for item in response.get("results") or []:
        score = item.get("score")
        web.append(
            SearchResult(
                title=item.get("title") or "Untitled",
                url=item.get("url") or "",
                content=sanitize_content(item.get("content") or item.get("snippet")),
                score=float(score) if score is not None else DEFAULT_SCORE,
                source="tavily",
            )
        )

    images = []
    for item in response.get("images") or []:
        if isinstance(item, str):
            images.append(ImageResult(url=item, alt="Search result image"))
        elif isinstance(item, dict) and item.get("url"):
            images.append(
                ImageResult(url=item["url"], alt=item.get("description") or "Search result image")
            )
    return ProviderResponse(web=web, images=images)


class TavilySearchClient(BaseSearchProvider):
    """
    Tavily-powered search provider.

    The SDK client is created lazily so environments without research features
    do not need the tavily package until a search is made.
    """

    provider_name = "tavily"

    def __init__(
        self,
        api_key: str | None,
        *,
        max_results: int = 10,
        search_depth: str = "advanced",
        client: Any = None,
        **kwargs,
    ):
        """
        Args:
            api_key: Tavily API key
            max_results: Maximum number of results per search
            search_depth: "basic" (faster) or "advanced" (deeper)
            client: Pre-built AsyncTavilyClient-compatible object
        """
        super().__init__(api_key, **kwargs)
        self.max_results = max_results
        self.search_depth = search_depth
        self._client = client

    def _get_client(self):
        if self._client is None:
            api_key = self._require_api_key()
            try:
                from tavily import AsyncTavilyClient
            except ModuleNotFoundError as e:
                raise ModuleNotFoundError(
                    "Dependency 'tavily' is not installed: pip install tavily-python"
                ) from e
            self._client = AsyncTavilyClient(api_key=api_key)
            logger.info("Tavily client initialized")
        return self._client

    async def search(self, query: str, max_results: int | None = None) -> ProviderResponse:
        client = self._get_client()
        logger.info(
            f"Tavily search: '{query[:100]}'",
            extra={"extra_fields": {"max_results": max_results or self.max_results}},
        )
        response = await client.search(
            query=query,
            max_results=max_results or self.max_results,
            search_depth=self.search_depth,
            include_answer=False,
            include_raw_content=False,
            include_images=True,
        )
        return parse_tavily_response(response or {})
