"""Normalization of provider output: sanitizing, URL validation, dedup and caps."""

import re
from typing import Iterable
from urllib.parse import urlparse

from models.search_models import ImageResult, SearchResult, VideoResult

MAX_WEB_RESULTS = 10
MAX_IMAGE_RESULTS = 10
MAX_VIDEO_RESULTS = 10

_TAG_RE = re.compile(r"<[^>]*>")
_ENTITY_RE = re.compile(r"&[^;\s]+;")
_WS_RE = re.compile(r"\s+")


def sanitize_content(content: str | None) -> str:
    """Strip HTML tags and entities and collapse whitespace."""
    if not content:
        return ""
    text = _TAG_RE.sub("", str(content))
    text = _ENTITY_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def is_valid_url(url: str | None) -> bool:
    """True for absolute URLs with a scheme and a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_https_url(url: str | None) -> bool:
    return bool(url) and url.startswith("https://")


def extract_domain(url: str) -> str | None:
    """Hostname without a leading www., or None when the URL cannot be parsed."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname[4:] if hostname.startswith("www.") else hostname


def extract_site_name(url: str) -> str:
    """
    Short site label used in citations: hostname minus www. and minus the TLD.

    https://www.reuters.com/world -> "reuters"
    https://en.wikipedia.org/wiki/X -> "en.wikipedia"
    """
    domain = extract_domain(url)
    if not domain:
        return "Unknown Site"
    parts = domain.split(".")
    if len(parts) > 1:
        parts = parts[:-1]
    return ".".join(parts)


def deduplicate_results(results: Iterable[SearchResult]) -> list[SearchResult]:
    """First occurrence of each exact url wins; order is preserved."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return unique


def deduplicate_images(images: Iterable[ImageResult]) -> list[ImageResult]:
    seen: set[str] = set()
    unique: list[ImageResult] = []
    for image in images:
        if image.url in seen:
            continue
        seen.add(image.url)
        unique.append(image)
    return unique


def normalize_web_results(
    results: Iterable[SearchResult], limit: int = MAX_WEB_RESULTS
) -> list[SearchResult]:
    """Dedup, drop records with invalid URLs or no title, sanitize, then cap."""
    cleaned: list[SearchResult] = []
    for result in deduplicate_results(results):
        if not is_valid_url(result.url) or not result.title:
            continue
        cleaned.append(
            SearchResult(
                title=sanitize_content(result.title) or "Untitled",
                url=result.url.strip(),
                content=sanitize_content(result.content),
                score=result.score,
                source=result.source,
            )
        )
    return cleaned[:limit]


def normalize_images(
    images: Iterable[ImageResult], limit: int = MAX_IMAGE_RESULTS
) -> list[ImageResult]:
    """HTTPS-only, dedup by url, capped."""
    https_only = [img for img in images if is_https_url(img.url)]
    return deduplicate_images(https_only)[:limit]


def normalize_videos(
    videos: Iterable[VideoResult], limit: int = MAX_VIDEO_RESULTS
) -> list[VideoResult]:
    valid = [
        VideoResult(
            title=video.title.strip(),
            url=video.url.strip(),
            thumbnail=video.thumbnail or None,
            duration=video.duration or None,
        )
        for video in videos
        if video.url and video.title
    ]
    seen: set[str] = set()
    unique: list[VideoResult] = []
    for video in valid:
        if video.url in seen:
            continue
        seen.add(video.url)
        unique.append(video)
    return unique[:limit]
