"""
SearchRetrievalOrchestrator - provider fallback chain for Lumen Search.

Key guarantees:
- Only InvalidInputError escapes orchestrate(); every provider failure
  degrades to a fallback provider or the "Search Unavailable" bundle
- The image provider is always called before the text provider
- Returned bundles are deduplicated, capped and HTTPS-only for images
"""

import asyncio
import inspect
import time
from collections.abc import Sequence
from typing import Awaitable, Callable

from models.errors import InvalidInputError, UploadCleanupError
from models.provider_result import NormalizedError, ProviderResult
from models.search_models import ProviderResponse, RetrievalBundle, SearchResult
from tools.web.base_provider import BaseImageSearchProvider, BaseSearchProvider, SleepFn
from tools.web.intent import build_enriched_query
from tools.web.normalize import (
    MAX_IMAGE_RESULTS,
    MAX_VIDEO_RESULTS,
    MAX_WEB_RESULTS,
    normalize_images,
    normalize_videos,
    normalize_web_results,
)
from tools.web.uploads import UploadStore
from utils.logger import get_logger

logger = get_logger(__name__)

StatusCallback = Callable[[str], "None | Awaitable[None]"]

UNAVAILABLE_RESULT = SearchResult(
    title="Search Unavailable",
    url="https://search.unavailable/",
    content=(
        "We could not reach any search provider for this query. "
        "Please try again in a few minutes."
    ),
    source="fallback",
)


_pending_status_tasks: set[asyncio.Task] = set()


def _log_status_error(message: str, error: BaseException) -> None:
    logger.warning(
        "Status callback raised",
        extra={"extra_fields": {"status": message, "error": str(error)}},
    )


def _status_task_done(message: str, task: asyncio.Task) -> None:
    _pending_status_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        _log_status_error(message, task.exception())


def notify_status(callback: StatusCallback | None, message: str) -> None:
    """
    Fire-and-forget progress update; callback errors are logged and dropped.

    Async callbacks are scheduled on the running loop and not awaited.
    """
    if callback is None:
        return
    try:
        result = callback(message)
    except Exception as e:
        _log_status_error(message, e)
        return

    if inspect.isawaitable(result):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            if inspect.iscoroutine(result):
                result.close()
            _log_status_error(message, e)
            return
        task = asyncio.ensure_future(result, loop=loop)
        _pending_status_tasks.add(task)
        task.add_done_callback(lambda t: _status_task_done(message, t))


def unavailable_bundle(query: str, is_reverse_image_search: bool = False) -> RetrievalBundle:
    return RetrievalBundle(
        query=query,
        results=(UNAVAILABLE_RESULT,),
        is_reverse_image_search=is_reverse_image_search,
    )


class SearchRetrievalOrchestrator:
    def __init__(
        self,
        text_provider: BaseSearchProvider,
        fallback_provider: BaseSearchProvider | None = None,
        image_provider: BaseImageSearchProvider | None = None,
        *,
        upload_store: UploadStore | None = None,
        max_results: int = MAX_WEB_RESULTS,
        max_images: int = MAX_IMAGE_RESULTS,
        max_videos: int = MAX_VIDEO_RESULTS,
        rate_limit_delay_s: float = 1.0,
        sleep: SleepFn = asyncio.sleep,
    ):
        """
        Args:
            text_provider: Primary text search (Brave)
            fallback_provider: Called once when the primary fails or is empty (Apify)
            image_provider: Reverse-image search (Bing)
            upload_store: Deletes transient image uploads after a reverse-image search
            rate_limit_delay_s: Pause before falling back to the secondary provider
            sleep: Awaitable used for the pause (tests inject a no-op)
        """
        self.text_provider = text_provider
        self.fallback_provider = fallback_provider
        self.image_provider = image_provider
        self.upload_store = upload_store
        self.max_results = max_results
        self.max_images = max_images
        self.max_videos = max_videos
        self.rate_limit_delay_s = rate_limit_delay_s
        self._sleep = sleep

    async def orchestrate(
        self,
        query: str,
        image_refs: Sequence[str] = (),
        on_status_update: StatusCallback | None = None,
    ) -> RetrievalBundle:
        query = (query or "").strip()
        image_refs = [ref for ref in (image_refs or ()) if ref and ref.strip()]
        if not query and not image_refs:
            raise InvalidInputError("A search needs a query or at least one image")

        start = time.perf_counter()
        if image_refs:
            try:
                if query:
                    bundle = await self._image_and_text_search(query, image_refs[0], on_status_update)
                else:
                    bundle = await self._image_only_search(image_refs[0], on_status_update)
            finally:
                await self._cleanup_uploads(image_refs)
        else:
            bundle = await self._text_search(query, on_status_update)

        logger.info(
            "Retrieval completed",
            extra={
                "extra_fields": {
                    "query": query[:100],
                    "image_count": len(image_refs),
                    "results": len(bundle.results),
                    "images": len(bundle.images),
                    "videos": len(bundle.videos),
                    "is_reverse_image_search": bundle.is_reverse_image_search,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                }
            },
        )
        return bundle

    async def _text_search(self, query: str, on_status_update: StatusCallback | None) -> RetrievalBundle:
        notify_status(on_status_update, "Searching the web...")

        async def fallback(error: NormalizedError) -> ProviderResult:
            if self.fallback_provider is None:
                return ProviderResult.failed(error)
            logger.info(
                "Primary search failed, using fallback provider",
                extra={
                    "extra_fields": {
                        "primary": error.provider,
                        "code": error.code,
                        "fallback": self.fallback_provider.provider_name,
                    }
                },
            )
            notify_status(on_status_update, "Trying alternate search provider...")
            await self._sleep(self.rate_limit_delay_s)
            return (await self.fallback_provider.safe_search(query)).require_results()

        result = await (await self.text_provider.safe_search(query)).require_results().or_else(fallback)
        if result.is_error:
            logger.error(
                "All text search providers failed",
                extra={"extra_fields": {"query": query[:100], "code": result.error.code}},
            )
            return unavailable_bundle(query)

        notify_status(on_status_update, "Processing search results...")
        return self._build_bundle(query, result.response, is_reverse_image_search=False)

    async def _image_only_search(
        self, image_ref: str, on_status_update: StatusCallback | None
    ) -> RetrievalBundle:
        notify_status(on_status_update, "Analyzing image...")
        result = await self._reverse_search(image_ref)
        if result.is_error:
            return unavailable_bundle("", is_reverse_image_search=True)
        return self._build_bundle("", result.response, is_reverse_image_search=True)

    async def _image_and_text_search(
        self, query: str, image_ref: str, on_status_update: StatusCallback | None
    ) -> RetrievalBundle:
        notify_status(on_status_update, "Analyzing image...")
        image_result = await self._reverse_search(image_ref)
        image_response = image_result.unwrap_or(ProviderResponse())

        enriched_query = build_enriched_query(query, image_response.web, image_response.images)
        logger.info(
            "Enriched query from reverse image search",
            extra={"extra_fields": {"query": query[:100], "enriched_query": enriched_query}},
        )

        notify_status(on_status_update, "Searching the web...")
        text_result = (await self.text_provider.safe_search(enriched_query)).require_results()

        if text_result.is_success:
            web = text_result.response.web
            videos = text_result.response.videos
        else:
            # Reverse-image pages are still relevant context for the answer
            web = image_response.web
            videos = []

        if not web and not image_response.images:
            return unavailable_bundle(query, is_reverse_image_search=True)

        combined = ProviderResponse(web=web, images=image_response.images, videos=videos)
        return self._build_bundle(query, combined, is_reverse_image_search=True)

    async def _reverse_search(self, image_ref: str) -> ProviderResult:
        if self.image_provider is None:
            return ProviderResult.failed(
                NormalizedError(
                    code="config",
                    message="No reverse image search provider configured",
                    provider="image",
                )
            )
        return (await self.image_provider.safe_reverse_search(image_ref)).require_results()

    async def _cleanup_uploads(self, image_refs: Sequence[str]) -> None:
        if self.upload_store is None:
            return
        for image_ref in image_refs:
            try:
                await self.upload_store.delete(image_ref)
            except UploadCleanupError as e:
                logger.warning(
                    "Failed to delete uploaded image",
                    extra={"extra_fields": {"image_ref": image_ref, "error": str(e)}},
                )

    def _build_bundle(
        self, query: str, response: ProviderResponse, *, is_reverse_image_search: bool
    ) -> RetrievalBundle:
        return RetrievalBundle(
            query=query,
            results=tuple(normalize_web_results(response.web, self.max_results)),
            images=tuple(normalize_images(response.images, self.max_images)),
            videos=tuple(normalize_videos(response.videos, self.max_videos)),
            is_reverse_image_search=is_reverse_image_search,
        )
