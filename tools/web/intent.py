"""Query enrichment from reverse-image search context."""

import re
from typing import Sequence

from models.search_models import ImageResult, SearchResult

from .normalize import extract_domain, sanitize_content

STOPWORDS = {"the", "and", "for", "with", "from", "this", "that", "https"}

MAX_KEYWORDS = 10
WORDS_PER_TITLE = 3
KEYWORD_SOURCE_RESULTS = 4
MAX_DOMAINS = 4
MAX_CAPTIONS = 2
CAPTION_CHARS = 30
MAX_QUERY_WORDS = 50
MAX_QUERY_CHARS = 400

_SITE_FILTER_RE = re.compile(r"(?i)(?<!\S)-?site:\S+")
_WORD_RE = re.compile(r"[^\w'-]+", re.UNICODE)


def _title_keywords(title: str) -> list[str]:
    words = []
    for raw in sanitize_content(title).split():
        word = _WORD_RE.sub("", raw).strip("'-")
        if len(word) > 3 and word.lower() not in STOPWORDS:
            words.append(word)
    return words[:WORDS_PER_TITLE]


def extract_keywords(results: Sequence[SearchResult], max_keywords: int = MAX_KEYWORDS) -> list[str]:
    """Up to three qualifying words per title from the first four results, unique, capped."""
    keywords: list[str] = []
    seen: set[str] = set()
    for result in results[:KEYWORD_SOURCE_RESULTS]:
        for word in _title_keywords(result.title):
            key = word.lower()
            if key in seen:
                continue
            seen.add(key)
            keywords.append(word)
            if len(keywords) >= max_keywords:
                return keywords
    return keywords


def extract_domains(results: Sequence[SearchResult], max_domains: int = MAX_DOMAINS) -> list[str]:
    domains: list[str] = []
    for result in results[:KEYWORD_SOURCE_RESULTS]:
        domain = extract_domain(result.url)
        if domain and domain not in domains:
            domains.append(domain)
        if len(domains) >= max_domains:
            break
    return domains


def extract_captions(images: Sequence[ImageResult], max_captions: int = MAX_CAPTIONS) -> list[str]:
    captions: list[str] = []
    for image in images:
        caption = sanitize_content(image.title or image.alt or "")
        if not caption:
            continue
        if len(caption) > CAPTION_CHARS:
            caption = caption[:CAPTION_CHARS].rstrip() + "..."
        captions.append(caption)
        if len(captions) >= max_captions:
            break
    return captions


def strip_site_filters(text: str) -> str:
    return re.sub(r"\s+", " ", _SITE_FILTER_RE.sub(" ", text)).strip()


def truncate_query(text: str, max_words: int = MAX_QUERY_WORDS, max_chars: int = MAX_QUERY_CHARS) -> str:
    """Cap a query at max_words words and max_chars characters, marking cuts with '...'."""
    words = text.split()
    truncated = len(words) > max_words
    text = " ".join(words[:max_words])
    if not truncated and len(text) <= max_chars:
        return text
    return text[: max_chars - 3].rstrip(" .,;:") + "..."


def build_enriched_query(
    query: str,
    web_results: Sequence[SearchResult],
    images: Sequence[ImageResult] = (),
) -> str:
    """
    Combine the user's text with context recovered from a reverse-image search.

    The result reads like "<query>. <keywords>. <domains>. <captions>" and is
    always within MAX_QUERY_WORDS words and MAX_QUERY_CHARS characters.
    """
    parts: list[str] = []
    user_text = strip_site_filters(sanitize_content(query))
    if user_text:
        parts.append(user_text)

    keywords = extract_keywords(web_results)
    if keywords:
        parts.append(" ".join(keywords))

    domains = extract_domains(web_results)
    if domains:
        parts.append(" ".join(domains))

    captions = extract_captions(images)
    if captions:
        parts.append(" ".join(captions))

    enriched = strip_site_filters(". ".join(parts))
    return truncate_query(enriched)

