"""Brave Search client: web (with news and videos) plus a separate image search."""

from typing import Any

from models.search_models import ImageResult, ProviderResponse, SearchResult, VideoResult
from utils.logger import get_logger

from .base_provider import BaseSearchProvider
from .normalize import is_https_url, is_valid_url, sanitize_content

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.search.brave.com/res/v1"
IMAGE_REQUEST_COUNT = 20
MAX_NEWS_RESULTS = 3
RATE_LIMIT_PAUSE_S = 1.0


def parse_web_results(payload: dict[str, Any]) -> list[SearchResult]:
    web = (payload.get("web") or {}).get("results") or []
    results = []
    for item in web:
        url = (item.get("url") or "").strip()
        if not is_valid_url(url):
            continue
        results.append(
            SearchResult(
                title=(item.get("title") or "").strip() or "Untitled",
                url=url,
                content=sanitize_content(item.get("description")),
                source="brave",
            )
        )
    return results


def parse_news_results(payload: dict[str, Any]) -> list[SearchResult]:
    news = (payload.get("news") or {}).get("results") or []
    results = []
    for item in news:
        url = (item.get("url") or "").strip()
        if not is_valid_url(url):
            continue
        snippets = item.get("extra_snippets") or []
        content = " ".join(snippets) if snippets else item.get("description") or ""
        results.append(
            SearchResult(
                title=(item.get("title") or "").strip() or "Untitled",
                url=url,
                content=sanitize_content(content),
                source="brave",
            )
        )
    return results[:MAX_NEWS_RESULTS]


def parse_video_results(payload: dict[str, Any]) -> list[VideoResult]:
    videos = (payload.get("videos") or {}).get("results") or []
    results = []
    for item in videos:
        url = (item.get("url") or "").strip()
        if not is_valid_url(url):
            continue
        video = item.get("video") or {}
        thumbnail = (item.get("thumbnail") or {}).get("src") or (video.get("thumbnail") or {}).get("src")
        results.append(
            VideoResult(
                title=(item.get("title") or video.get("creator") or "Untitled").strip(),
                url=url,
                thumbnail=thumbnail,
                duration=video.get("duration"),
            )
        )
    return results


def parse_image_results(payload: dict[str, Any]) -> list[ImageResult]:
    results = []
    for item in payload.get("results") or []:
        image_url = (
            (item.get("properties") or {}).get("url")
            or (item.get("thumbnail") or {}).get("src")
            or item.get("url")
            or ""
        ).strip()
        if not is_https_url(image_url):
            continue
        title = (item.get("title") or "").strip()
        results.append(
            ImageResult(
                url=image_url,
                alt=title or sanitize_content(item.get("description")) or "Search result image",
                source_url=item.get("url"),
                title=title or None,
            )
        )
    return results


class BraveSearchClient(BaseSearchProvider):
    """
    Primary text provider.

    One logical search is two HTTP calls: web search first, a short pause to
    respect Brave's rate limit, then image search. A failing image call only
    costs the images.
    """

    provider_name = "brave"

    def __init__(self, api_key: str | None, *, base_url: str = DEFAULT_BASE_URL, **kwargs):
        super().__init__(api_key, **kwargs)
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-Subscription-Token": self._require_api_key(),
        }

    async def search(self, query: str) -> ProviderResponse:
        headers = self._headers()
        async with self._http_client() as client:
            web_response = await client.get(
                f"{self.base_url}/web/search",
                params={"q": query, "text_decorations": "false"},
                headers=headers,
            )
            payload = self._json(web_response)

            web = parse_web_results(payload) + parse_news_results(payload)
            videos = parse_video_results(payload)

            await self._sleep(RATE_LIMIT_PAUSE_S)

            images: list[ImageResult] = []
            try:
                image_response = await client.get(
                    f"{self.base_url}/images/search",
                    params={
                        "q": query,
                        "safesearch": "strict",
                        "count": IMAGE_REQUEST_COUNT,
                        "search_lang": "en",
                        "country": "us",
                        "spellcheck": 1,
                    },
                    headers=headers,
                )
                images = parse_image_results(self._json(image_response))
            except Exception as e:
                logger.warning(
                    f"Brave image search failed, keeping web results: {e}",
                    extra={"extra_fields": {"query": query[:100]}},
                )

        return ProviderResponse(web=web, images=images, videos=videos)
