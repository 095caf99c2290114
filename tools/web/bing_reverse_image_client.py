"""Bing reverse-image search through the SERP API edge function."""

from typing import Any

from models.errors import ProviderError
from models.search_models import ImageResult, ProviderResponse, SearchResult
from utils.logger import get_logger

from .base_provider import BaseImageSearchProvider
from .normalize import sanitize_content

logger = get_logger(__name__)


def parse_edge_payload(data: dict[str, Any]) -> ProviderResponse:
    web = [
        SearchResult(
            title=item.get("title") or "Untitled",
            url=item.get("url") or item.get("link") or "",
            content=sanitize_content(item.get("content") or item.get("snippet")),
            source="bing",
        )
        for item in data.get("web") or []
    ]
    images = [
        ImageResult(
            url=item.get("url") or item.get("original") or "",
            alt=item.get("alt") or item.get("title") or "Related image",
            source_url=item.get("source_url") or item.get("link"),
            title=item.get("title"),
        )
        for item in data.get("images") or []
    ]
    return ProviderResponse(web=web, images=images)


class BingReverseImageClient(BaseImageSearchProvider):
    """
    Reverse-image provider.

    The edge function holds the SERP API key; this client authenticates with
    the public anon key and posts {imageUrl, query?}.
    """

    provider_name = "bing_reverse_image"

    def __init__(self, api_key: str | None, *, endpoint_url: str | None, **kwargs):
        super().__init__(api_key, **kwargs)
        self.endpoint_url = endpoint_url

    async def reverse_search(self, image_url: str, query: str | None = None) -> ProviderResponse:
        anon_key = self._require_api_key()
        if not self.endpoint_url:
            raise ProviderError(
                "Bing reverse image endpoint is not configured",
                provider=self.provider_name,
                code="config",
            )
        if not image_url or not image_url.startswith("http"):
            raise ProviderError(
                "Invalid image URL - must be a public HTTP(S) URL",
                provider=self.provider_name,
                code="bad_request",
                details={"image_url": image_url},
            )

        body: dict[str, Any] = {"imageUrl": image_url}
        if query:
            body["query"] = query

        async with self._http_client() as client:
            response = await client.post(
                self.endpoint_url,
                json=body,
                headers={"Authorization": f"Bearer {anon_key}"},
            )
            payload = self._json(response)

        if not payload.get("success") or not payload.get("data"):
            raise ProviderError(
                "Edge function returned unsuccessful response",
                provider=self.provider_name,
                details={"error": payload.get("error")},
            )

        data = payload["data"]
        logger.debug(
            "Bing reverse image payload received",
            extra={
                "extra_fields": {
                    "total_matches": data.get("totalMatches", 0),
                    "related_searches": len(data.get("relatedSearches") or []),
                }
            },
        )
        return parse_edge_payload(data)
