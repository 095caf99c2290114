"""Research search helpers: single, staggered-parallel and focus-mode searches."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from models.search_models import SearchResult
from utils.logger import get_logger

from .base_provider import BaseSearchProvider, SleepFn
from .history import BoundedHistory

logger = get_logger(__name__)

MAX_PARALLEL_SEARCHES = 3
STAGGER_DELAY_S = 0.5
MAX_RESULTS_PER_RESPONSE = 10


class FocusMode(str, Enum):
    WEB = "web"
    HEALTH = "health"
    ACADEMIC = "academic"
    FINANCE = "finance"
    TRAVEL = "travel"
    SOCIAL = "social"
    MATH = "math"
    VIDEO = "video"

    @classmethod
    def parse(cls, value: "str | FocusMode | None") -> "FocusMode":
        """Unknown or empty modes search the general web."""
        if isinstance(value, FocusMode):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.WEB


# (query suffix, reason) per mode, most important first
FOCUS_STRATEGIES: dict[FocusMode, tuple[tuple[str, str], ...]] = {
    FocusMode.WEB: (
        ("comprehensive overview", "General comprehensive search"),
        ("recent developments news", "Recent developments"),
        ("expert analysis opinions", "Expert perspectives"),
    ),
    FocusMode.HEALTH: (
        ("medical research studies", "Find medical research and studies"),
        ("health implications effects", "Understand health implications"),
        ("clinical trials evidence", "Look for clinical evidence"),
    ),
    FocusMode.ACADEMIC: (
        ("academic research papers", "Find scholarly articles"),
        ("peer reviewed studies", "Locate peer-reviewed research"),
        ("university research findings", "Find university research"),
    ),
    FocusMode.FINANCE: (
        ("financial analysis market", "Financial market analysis"),
        ("economic impact trends", "Economic implications"),
        ("investment opportunities risks", "Investment perspective"),
    ),
    FocusMode.TRAVEL: (
        ("travel guide information", "Travel and tourism info"),
        ("local attractions recommendations", "Local recommendations"),
        ("visitor experiences reviews", "Visitor experiences"),
    ),
    FocusMode.SOCIAL: (
        ("social media discussions", "Social media perspectives"),
        ("community opinions forums", "Community discussions"),
        ("public sentiment analysis", "Public opinion"),
    ),
    FocusMode.MATH: (
        ("mathematical analysis calculations", "Mathematical aspects"),
        ("computational methods algorithms", "Computational approaches"),
        ("statistical data analysis", "Statistical analysis"),
    ),
    FocusMode.VIDEO: (
        ("video content tutorials", "Video content and tutorials"),
        ("visual demonstrations examples", "Visual demonstrations"),
        ("multimedia presentations", "Multimedia content"),
    ),
}


@dataclass(frozen=True)
class SearchQuery:
    query: str
    reason: str = ""
    priority: int = 0


@dataclass(frozen=True)
class SearchResponse:
    query: str
    results: tuple[SearchResult, ...]
    source: str  # "tavily" | "fallback_provider" | "fallback"
    total_results: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "total_results": self.total_results,
        }


def focus_queries(base_query: str, focus_mode: "str | FocusMode") -> list[SearchQuery]:
    strategies = FOCUS_STRATEGIES[FocusMode.parse(focus_mode)]
    return [
        SearchQuery(query=f"{base_query} {suffix}", reason=reason, priority=len(strategies) - index)
        for index, (suffix, reason) in enumerate(strategies)
    ]


def mock_results(query: str) -> tuple[SearchResult, ...]:
    """Placeholder results returned when every research provider fails."""
    return (
        SearchResult(
            title=f'Research Results for "{query}"',
            url="https://example.com/research",
            content=f"Comprehensive information about {query}. "
            "This is a fallback result when search services are unavailable.",
            score=0.8,
            source="fallback",
        ),
        SearchResult(
            title=f"Analysis of {query}",
            url="https://research.example.com/analysis",
            content=f"In-depth analysis and insights related to {query}.",
            score=0.7,
            source="fallback",
        ),
        SearchResult(
            title=f"Latest Developments in {query}",
            url="https://news.example.com/latest",
            content=f"Recent news and developments concerning {query}.",
            score=0.6,
            source="fallback",
        ),
    )


class ResearchSearchTools:
    """
    Tavily-first research search with a secondary provider and mock fallback.

    Every response, including mock ones, is recorded in a bounded history.
    """

    def __init__(
        self,
        tavily_provider: BaseSearchProvider,
        fallback_provider: BaseSearchProvider | None = None,
        *,
        rate_limit_delay_s: float = 1.0,
        history_capacity: int = 50,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.tavily_provider = tavily_provider
        self.fallback_provider = fallback_provider
        self.rate_limit_delay_s = rate_limit_delay_s
        self._history: BoundedHistory[SearchResponse] = BoundedHistory(history_capacity)
        self._sleep = sleep

    async def perform_search(self, search_query: SearchQuery) -> SearchResponse:
        query = search_query.query
        logger.info(
            f"Performing search: '{query[:100]}'",
            extra={"extra_fields": {"reason": search_query.reason}},
        )
        await self._sleep(self.rate_limit_delay_s)

        response = await self._search_with(self.tavily_provider, query, "tavily")
        if response is None and self.fallback_provider is not None:
            response = await self._search_with(self.fallback_provider, query, "fallback_provider")
        if response is None:
            logger.warning(
                "All research providers failed, returning mock results",
                extra={"extra_fields": {"query": query[:100]}},
            )
            results = mock_results(query)
            response = SearchResponse(
                query=query, results=results, source="fallback", total_results=len(results)
            )

        self._history.append(response)
        return response

    async def _search_with(
        self, provider: BaseSearchProvider, query: str, source: str
    ) -> SearchResponse | None:
        result = await provider.safe_search(query)
        if result.is_error or not result.response.web:
            return None
        web = result.response.web
        return SearchResponse(
            query=query,
            results=tuple(web[:MAX_RESULTS_PER_RESPONSE]),
            source=source,
            total_results=len(web),
        )

    async def perform_parallel_searches(self, queries: list[SearchQuery]) -> list[SearchResponse]:
        ordered = sorted(queries, key=lambda q: q.priority, reverse=True)
        selected = ordered[:MAX_PARALLEL_SEARCHES]
        if len(queries) > len(selected):
            logger.info(
                "Dropping lower-priority research queries",
                extra={"extra_fields": {"requested": len(queries), "kept": len(selected)}},
            )

        async def staggered(index: int, search_query: SearchQuery) -> SearchResponse:
            if index:
                await self._sleep(index * STAGGER_DELAY_S)
            return await self.perform_search(search_query)

        responses = await asyncio.gather(
            *(staggered(index, q) for index, q in enumerate(selected)), return_exceptions=True
        )

        kept = []
        for search_query, response in zip(selected, responses):
            if isinstance(response, BaseException):
                logger.error(
                    "Research search raised",
                    extra={"extra_fields": {"query": search_query.query[:100], "error": str(response)}},
                )
                continue
            if response.results:
                kept.append(response)
        return kept

    async def perform_focused_search(
        self, base_query: str, focus_mode: "str | FocusMode" = FocusMode.WEB
    ) -> list[SearchResponse]:
        return await self.perform_parallel_searches(focus_queries(base_query, focus_mode))

    def get_search_history(self) -> list[SearchResponse]:
        return self._history.items()

    def clear_history(self) -> None:
        self._history.clear()
