"""Apify Google Search Scraper client (text and images in parallel)."""

import asyncio
from typing import Any

from models.errors import ProviderError
from models.search_models import ImageResult, ProviderResponse, SearchResult
from utils.logger import get_logger

from .base_provider import BaseSearchProvider
from .normalize import sanitize_content

logger = get_logger(__name__)

APIFY_ENDPOINT = (
    "https://api.apify.com/v2/acts/apify~google-search-scraper/run-sync-get-dataset-items"
)
RESULTS_PER_PAGE = 10


def _actor_input(query: str, results_per_page: int, images: bool = False) -> dict[str, Any]:
    body: dict[str, Any] = {
        "queries": query,
        "resultsPerPage": results_per_page,
        "maxPagesPerQuery": 1,
        "languageCode": "en",
        "countryCode": "us",
        "mobileResults": False,
        "includeUnfilteredResults": False,
    }
    if images:
        body["searchType"] = "images"
    return body


def parse_organic_results(payload: Any, limit: int = RESULTS_PER_PAGE) -> list[SearchResult]:
    first = payload[0] if isinstance(payload, list) and payload else {}
    results = []
    for item in (first.get("organicResults") or [])[:limit]:
        results.append(
            SearchResult(
                title=item.get("title") or "No title",
                url=item.get("url") or item.get("link") or "",
                content=sanitize_content(item.get("description") or item.get("snippet")),
                score=item.get("score"),
                source="apify",
            )
        )
    return results


def parse_image_items(payload: Any, limit: int = RESULTS_PER_PAGE) -> list[ImageResult]:
    first = payload[0] if isinstance(payload, list) and payload else {}
    items = first.get("imageResults") or first.get("organicResults") or first.get("images") or []
    images = []
    for item in items[:limit]:
        nested = item.get("image")
        image_url = (
            item.get("imageUrl")
            or item.get("thumbnailUrl")
            or item.get("thumbnail")
            or (nested.get("url") if isinstance(nested, dict) else nested)
            or item.get("url")
            or ""
        )
        if not isinstance(image_url, str) or not image_url.startswith("http"):
            continue
        images.append(
            ImageResult(
                url=image_url,
                alt=item.get("title") or item.get("alt") or item.get("description") or "Search result image",
                source_url=item.get("pageUrl") or item.get("sourceUrl") or item.get("link") or None,
                title=item.get("title"),
            )
        )
    return images


class ApifySearchClient(BaseSearchProvider):
    """Fallback text provider; the image tab is queried alongside the web tab."""

    provider_name = "apify"

    def __init__(self, api_key: str | None, *, results_per_page: int = RESULTS_PER_PAGE, **kwargs):
        super().__init__(api_key, **kwargs)
        self.results_per_page = results_per_page

    async def search(self, query: str) -> ProviderResponse:
        token = self._require_api_key()
        async with self._http_client() as client:
            text_response, image_response = await asyncio.gather(
                client.post(
                    APIFY_ENDPOINT,
                    params={"token": token},
                    json=_actor_input(query, self.results_per_page),
                ),
                client.post(
                    APIFY_ENDPOINT,
                    params={"token": token},
                    json=_actor_input(query, self.results_per_page, images=True),
                ),
                return_exceptions=True,
            )

        if isinstance(text_response, BaseException):
            raise text_response
        if text_response.status_code >= 400:
            raise ProviderError(
                f"Apify text search error: {text_response.status_code}",
                provider=self.provider_name,
                code="rate_limit" if text_response.status_code == 429 else "provider_error",
                retryable=text_response.status_code >= 429,
                details={"status_code": text_response.status_code},
            )
        web = parse_organic_results(text_response.json(), self.results_per_page)

        images: list[ImageResult] = []
        if isinstance(image_response, BaseException):
            logger.warning(f"Apify image search failed: {image_response}")
        elif image_response.status_code < 400:
            try:
                images = parse_image_items(image_response.json(), self.results_per_page)
            except ValueError as e:
                logger.warning(f"Apify image search returned unparseable body: {e}")
        else:
            logger.warning(
                "Apify image search returned an error status",
                extra={"extra_fields": {"status_code": image_response.status_code}},
            )

        return ProviderResponse(web=web, images=images)
