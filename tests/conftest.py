import os

# Keep test runs from writing log files into the repo
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_TO_CONSOLE", "false")

import pytest

from models.search_models import ImageResult, ProviderResponse, SearchResult
from tools.web.base_provider import BaseImageSearchProvider, BaseSearchProvider


async def no_sleep(delay: float) -> None:
    return None


class FakeSearchProvider(BaseSearchProvider):
    """Text provider returning a canned response (or raising) and recording queries."""

    def __init__(self, name: str, response: ProviderResponse | None = None, error: Exception | None = None):
        super().__init__("test-key", timeout_s=5.0, sleep=no_sleep)
        self.provider_name = name
        self.response = response if response is not None else ProviderResponse()
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> ProviderResponse:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.response


class FakeImageProvider(BaseImageSearchProvider):
    def __init__(self, response: ProviderResponse | None = None, error: Exception | None = None):
        super().__init__("test-key", timeout_s=5.0, sleep=no_sleep)
        self.provider_name = "fake_image"
        self.response = response if response is not None else ProviderResponse()
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    async def reverse_search(self, image_url: str, query: str | None = None) -> ProviderResponse:
        self.calls.append((image_url, query))
        if self.error is not None:
            raise self.error
        return self.response


class FakeChatClient:
    """Chat client returning queued replies; an Exception in the queue is raised."""

    provider_name = "fake"

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls: list[dict] = []

    async def complete(self, messages, *, model=None, temperature=0.7, max_output_tokens=1200, json_mode=False):
        self.calls.append(
            {
                "messages": messages,
                "model": model,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
                "json_mode": json_mode,
            }
        )
        reply = self.replies.pop(0) if self.replies else RuntimeError("no reply queued")
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_results(count: int, prefix: str = "https://example.com/page") -> list[SearchResult]:
    return [
        SearchResult(title=f"Result {i}", url=f"{prefix}{i}", content=f"Content {i}")
        for i in range(count)
    ]


@pytest.fixture
def sample_response() -> ProviderResponse:
    return ProviderResponse(
        web=make_results(3),
        images=[ImageResult(url="https://img.example.com/a.jpg", alt="A cat")],
    )
