import asyncio
import json

from api.base_client import BaseChatClient
from models.provider_result import ProviderResult
from models.search_models import Perspective, SearchResult
from orchestrator.answer_generator import strip_code_fences
from tools.web.base_provider import BaseSearchProvider
from tools.web.normalize import deduplicate_results
from tools.web.research_pack import build_perspective_messages
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_RELEVANCE = 0.5
PERSPECTIVE_COUNT = 5


def _score(result: SearchResult) -> float:
    return result.score if result.score is not None else DEFAULT_RELEVANCE


def rank_results(results: list[SearchResult]) -> list[SearchResult]:
    """Dedup by url (first wins) and sort by score, highest first. Stable for ties."""
    return sorted(deduplicate_results(results), key=_score, reverse=True)


def perspectives_from_results(results: list[SearchResult], count: int = PERSPECTIVE_COUNT) -> list[Perspective]:
    return [
        Perspective(
            id=f"perspective-{index}",
            title=result.title,
            content=result.content,
            source=result.source or "web",
            relevance=_score(result),
        )
        for index, result in enumerate(results[:count])
    ]


class PerspectiveAgent:
    """
    Collects viewpoints on a query for the pro tier.

    Pro searches merge the scraper (Apify) and Tavily results; regular searches
    use Tavily alone. When a chat client is available the merged results are
    condensed into perspectives by the model, otherwise the top results are
    used directly.
    """

    def __init__(
        self,
        tavily_provider: BaseSearchProvider,
        pro_provider: BaseSearchProvider | None = None,
        client: BaseChatClient | None = None,
        *,
        model: str | None = None,
        timeout_s: float = 30.0,
    ):
        self.tavily_provider = tavily_provider
        self.pro_provider = pro_provider
        self.client = client
        self.model = model
        self.timeout_s = timeout_s

    async def search(self, query: str, is_pro: bool = False, max_results: int = 10) -> list[SearchResult]:
        if is_pro and self.pro_provider is not None:
            outcomes = await asyncio.gather(
                self.pro_provider.safe_search(query),
                self.tavily_provider.safe_search(query),
                return_exceptions=True,
            )
        else:
            logger.info("Regular perspective search, using Tavily only")
            outcomes = [await self.tavily_provider.safe_search(query)]

        merged: list[SearchResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                logger.warning(
                    "Perspective provider raised",
                    extra={"extra_fields": {"error": str(outcome), "error_type": type(outcome).__name__}},
                )
                continue
            if isinstance(outcome, ProviderResult) and outcome.is_success:
                merged.extend(outcome.response.web)

        ranked = rank_results(merged)[:max_results]
        logger.info(
            "Perspective search completed",
            extra={"extra_fields": {"query": query[:100], "is_pro": is_pro, "results": len(ranked)}},
        )
        return ranked

    async def generate_perspectives(
        self, query: str, is_pro: bool = False, max_results: int = 10
    ) -> list[Perspective]:
        results = await self.search(query, is_pro=is_pro, max_results=max_results)
        if not results:
            return []

        if self.client is not None:
            try:
                perspectives = await self._perspectives_from_model(query, results)
            except Exception as e:
                logger.warning(
                    "Perspective generation by model failed, using raw results",
                    extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
                )
            else:
                if perspectives:
                    return perspectives

        return perspectives_from_results(results)

    async def _perspectives_from_model(self, query: str, results: list[SearchResult]) -> list[Perspective]:
        text = await asyncio.wait_for(
            self.client.complete(
                build_perspective_messages(query, results),
                model=self.model,
                temperature=0.7,
                max_output_tokens=1200,
                json_mode=True,
            ),
            timeout=self.timeout_s,
        )
        data = json.loads(strip_code_fences(text))
        items = data.get("perspectives") if isinstance(data, dict) else None

        perspectives = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            title = str(item.get("title") or "").strip()
            content = str(item.get("content") or "").strip()
            if not title or not content:
                continue
            perspectives.append(
                Perspective(
                    id=f"perspective-{len(perspectives)}",
                    title=title,
                    content=content,
                    source="analysis",
                    relevance=DEFAULT_RELEVANCE,
                )
            )
            if len(perspectives) == PERSPECTIVE_COUNT:
                break
        return perspectives
