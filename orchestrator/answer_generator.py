"""
AnswerGenerator - turns a RetrievalBundle into a cited article.

Never raises: LLM failures are retried with backoff, then replaced by a
canned apology article built from the query and the top results.
"""

import asyncio
import json
import re
from typing import Any

from api.base_client import BaseChatClient
from config.registry import SearchRegistry
from models.errors import AnswerGenerationError
from models.search_models import ArticleResult, Citation, RetrievalBundle, SearchResult
from orchestrator.core import StatusCallback, notify_status
from orchestrator.retry import RetryPolicy, retry_with_backoff
from tools.web.base_provider import SleepFn
from tools.web.normalize import extract_site_name
from tools.web.research_pack import MAX_CONTENT_CHARS, MAX_SOURCES, build_answer_messages
from utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_CONTENT = (
    "We apologize, but we could not process your search at this time. "
    "Please try your search again in a few minutes."
)
FALLBACK_CITATION_COUNT = 5

_FENCE_START_RE = re.compile(r"^```[a-zA-Z]*\s*\n?")
_FENCE_END_RE = re.compile(r"\n?```\s*$")
_FOLLOW_UP_SECTION_RE = re.compile(r"Follow[- ]?up Questions:?\s*\n([\s\S]*?)(?:\n\n|$)", re.IGNORECASE)
_CITATION_SECTION_RE = re.compile(r"Citations?:?\s*\n([\s\S]*?)(?:\n\n|$)", re.IGNORECASE)
_LIST_MARKER_RE = re.compile(r"^(?:[-*•]|\d+[.)])\s*")


def fallback_follow_up_questions(query: str) -> tuple[str, ...]:
    topic = query.strip() or "this topic"
    return (
        f"What specific information would be most valuable about {topic}?",
        f"How can I explore different aspects of {topic}?",
        f"What current developments should I know about {topic}?",
        f"Where can I find expert insights on {topic}?",
        f"What practical applications relate to {topic}?",
    )


def citations_from_results(results, limit: int = FALLBACK_CITATION_COUNT) -> tuple[Citation, ...]:
    return tuple(
        Citation(url=r.url, title=r.title, site_name=extract_site_name(r.url)) for r in results[:limit]
    )


def fallback_article(bundle: RetrievalBundle) -> ArticleResult:
    return ArticleResult(
        content=FALLBACK_CONTENT,
        follow_up_questions=fallback_follow_up_questions(bundle.query),
        citations=citations_from_results(bundle.results),
        is_fallback=True,
    )


def strip_code_fences(text: str) -> str:
    text = text.strip()
    text = _FENCE_START_RE.sub("", text)
    return _FENCE_END_RE.sub("", text).strip()


def _section_lines(match: re.Match | None) -> list[str]:
    if match is None:
        return []
    lines = []
    for line in match.group(1).splitlines():
        line = _LIST_MARKER_RE.sub("", line.strip()).strip()
        if line:
            lines.append(line)
    return lines


def _article_from_json(data: dict[str, Any]) -> ArticleResult | None:
    content = data.get("content")
    follow_ups = data.get("followUpQuestions")
    if not isinstance(content, str) or not content.strip() or not isinstance(follow_ups, list):
        return None

    citations = []
    for item in data.get("citations") or []:
        if isinstance(item, dict) and item.get("url"):
            url = str(item["url"])
            citations.append(
                Citation(
                    url=url,
                    title=str(item.get("title") or url),
                    site_name=str(item.get("siteName") or extract_site_name(url)),
                )
            )
    return ArticleResult(
        content=content,
        follow_up_questions=tuple(str(q) for q in follow_ups if str(q).strip()),
        citations=tuple(citations),
    )


def parse_article(text: str | None) -> ArticleResult | None:
    """
    Parse model output into an ArticleResult.

    Accepts fenced or bare JSON. Anything else is treated as Markdown prose,
    with follow-up questions and citations pulled from labelled sections.
    Returns None for empty output.

    Raises:
        AnswerGenerationError: The output is a JSON object or array that is
            not a valid article (missing content or followUpQuestions).
    """
    if not text or not text.strip():
        return None

    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, (dict, list)):
        article = _article_from_json(data) if isinstance(data, dict) else None
        if article is None:
            raise AnswerGenerationError("Invalid article format")
        return article

    follow_ups = _section_lines(_FOLLOW_UP_SECTION_RE.search(text))
    citations = [
        Citation(url="", title=line, site_name="")
        for line in _section_lines(_CITATION_SECTION_RE.search(text))
    ]
    return ArticleResult(
        content=text.strip(),
        follow_up_questions=tuple(follow_ups),
        citations=tuple(citations),
    )


class AnswerGenerator:
    def __init__(
        self,
        client: BaseChatClient,
        registry: SearchRegistry | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.client = client
        self.registry = registry or SearchRegistry()
        settings = self.registry.answer_generation
        self.temperature = float(settings.get("temperature", 0.7))
        self.max_output_tokens = int(settings.get("max_output_tokens", 1200))
        self.timeout_s = float(settings.get("timeout_s", 30))
        self.max_sources = int(settings.get("max_sources", MAX_SOURCES))
        self.max_content_chars = int(settings.get("max_content_chars", MAX_CONTENT_CHARS))
        if retry_policy is None:
            retry = self.registry.retry
            retry_policy = RetryPolicy(
                max_retries=int(retry.get("max_retries", 3)),
                base_delay_s=float(retry.get("base_delay_s", 1.0)),
                multiplier=float(retry.get("multiplier", 2.0)),
            )
        self.retry_policy = retry_policy
        self._sleep = sleep

    def select_model(self, bundle: RetrievalBundle) -> str:
        if bundle.is_reverse_image_search:
            return self.registry.image_search_model()
        return self.registry.text_search_model()

    async def generate(
        self, bundle: RetrievalBundle, on_status_update: StatusCallback | None = None
    ) -> ArticleResult:
        notify_status(on_status_update, "Analyzing search results...")
        model = self.select_model(bundle)
        messages = build_answer_messages(
            bundle.query,
            bundle.results,
            is_reverse_image_search=bundle.is_reverse_image_search,
            max_sources=self.max_sources,
            max_content_chars=self.max_content_chars,
        )
        logger.info(
            "Generating answer",
            extra={
                "extra_fields": {
                    "query": bundle.query[:100],
                    "model": model,
                    "source_count": min(len(bundle.results), self.max_sources),
                    "is_reverse_image_search": bundle.is_reverse_image_search,
                }
            },
        )

        notify_status(on_status_update, "Generating comprehensive answer...")
        try:
            # parsing is part of the attempt so malformed JSON is retried too
            article = await retry_with_backoff(
                lambda: self._complete_article(messages, model),
                self.retry_policy,
                sleep=self._sleep,
                label="answer generation",
            )
        except Exception as e:
            error = AnswerGenerationError(f"Answer generation failed after retries: {e}")
            logger.error(
                str(error),
                extra={"extra_fields": {"model": model, "error_type": type(e).__name__}},
            )
            notify_status(on_status_update, "Article generation completed with fallback content")
            return fallback_article(bundle)

        if article is None:
            logger.warning("Model returned empty output, using fallback article")
            return fallback_article(bundle)

        if not article.citations:
            article = ArticleResult(
                content=article.content,
                follow_up_questions=article.follow_up_questions,
                citations=citations_from_results(bundle.results, self.max_sources),
            )
        logger.info(
            "Answer generated",
            extra={
                "extra_fields": {
                    "content_length": len(article.content),
                    "follow_up_count": len(article.follow_up_questions),
                    "citation_count": len(article.citations),
                }
            },
        )
        return article

    async def _complete_article(self, messages: list[dict[str, str]], model: str) -> ArticleResult | None:
        return parse_article(await self._complete(messages, model))

    async def _complete(self, messages: list[dict[str, str]], model: str) -> str:
        return await asyncio.wait_for(
            self.client.complete(
                messages,
                model=model,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                json_mode=True,
            ),
            timeout=self.timeout_s,
        )
