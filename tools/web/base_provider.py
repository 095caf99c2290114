import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

import httpx

from models.errors import ProviderError, classify_exception
from models.provider_result import ProviderResult
from models.search_models import ProviderResponse
from utils.logger import get_logger

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class BaseSearchProvider(ABC):
    """
    Abstract base class for external search providers.

    Subclasses implement the raw call (search / reverse_search) and may raise
    anything. Callers go through safe_search / safe_reverse_search, which apply
    the timeout and turn every failure into a ProviderResult error.
    """

    provider_name = "base"

    def __init__(
        self,
        api_key: str | None,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        """
        Args:
            api_key: Credential for the provider; None makes every call fail fast
            timeout_s: Upper bound for one logical call, including internal delays
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            sleep: Awaitable used for rate-limit pauses between sub-requests
        """
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._transport = transport
        self._sleep = sleep

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ProviderError(
                f"{self.provider_name} API key is not configured",
                provider=self.provider_name,
                code="config",
            )
        return self.api_key

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        response.raise_for_status()
        return response.json() if response.content else {}

    async def _guarded(self, call: Awaitable[ProviderResponse], label: str) -> ProviderResult:
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(call, timeout=self.timeout_s)
        except Exception as exc:
            latency_ms = int((time.perf_counter() - start) * 1000)
            error = classify_exception(exc, self.provider_name)
            logger.warning(
                f"{self.provider_name} {label} failed",
                extra={
                    "extra_fields": {
                        "provider": self.provider_name,
                        "code": error.code,
                        "error": error.message,
                        "latency_ms": latency_ms,
                    }
                },
            )
            return ProviderResult.failed(error, latency_ms=latency_ms)

        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"{self.provider_name} {label} completed",
            extra={
                "extra_fields": {
                    "provider": self.provider_name,
                    "web_count": len(response.web),
                    "image_count": len(response.images),
                    "video_count": len(response.videos),
                    "latency_ms": latency_ms,
                }
            },
        )
        return ProviderResult.ok(self.provider_name, response, latency_ms=latency_ms)

    @abstractmethod
    async def search(self, query: str) -> ProviderResponse:
        """Run a text search. May raise."""

    async def safe_search(self, query: str) -> ProviderResult:
        return await self._guarded(self.search(query), "search")


class BaseImageSearchProvider(BaseSearchProvider):
    """Provider that searches by image instead of (or in addition to) text."""

    @abstractmethod
    async def reverse_search(self, image_url: str, query: str | None = None) -> ProviderResponse:
        """Run a reverse-image search for a public image URL. May raise."""

    async def search(self, query: str) -> ProviderResponse:
        raise ProviderError(
            f"{self.provider_name} only supports image search",
            provider=self.provider_name,
            code="bad_request",
        )

    async def safe_reverse_search(self, image_url: str, query: str | None = None) -> ProviderResult:
        return await self._guarded(self.reverse_search(image_url, query), "reverse image search")
