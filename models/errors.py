"""Exception taxonomy for the search service.

Only InvalidInputError is meant to reach callers. The others are raised inside a
component and converted to a fallback value at its boundary.
"""

import asyncio

import httpx
import openai

from models.provider_result import NormalizedError


class SearchServiceError(Exception):
    """Base class for all search service errors."""


class InvalidInputError(SearchServiceError):
    """Neither a query nor an image reference was supplied."""


class ProviderError(SearchServiceError):
    """A single provider call failed (network, non-2xx, timeout, bad payload, config)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        code: str = "provider_error",
        retryable: bool = False,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.error = NormalizedError(
            code=code,
            message=message,
            provider=provider,
            retryable=retryable,
            details=details or {},
        )

    @property
    def provider(self) -> str:
        return self.error.provider

    @property
    def code(self) -> str:
        return self.error.code


class AnswerGenerationError(SearchServiceError):
    """The LLM call still failed after the retry budget was spent."""


class UploadCleanupError(SearchServiceError):
    """A transient uploaded image could not be deleted."""


def classify_exception(exc: BaseException, provider: str) -> NormalizedError:
    """Map a low-level exception to a NormalizedError."""
    if isinstance(exc, ProviderError):
        return exc.error

    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException, openai.APITimeoutError)):
        return NormalizedError(
            code="timeout",
            message=f"{provider} request timed out",
            provider=provider,
            retryable=True,
            details={"exception_type": type(exc).__name__},
        )

    status = None
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
    elif isinstance(exc, openai.APIStatusError):
        status = exc.status_code

    if status is not None:
        if status in (401, 403):
            code, retryable = "auth", False
        elif status == 429:
            code, retryable = "rate_limit", True
        elif 400 <= status < 500:
            code, retryable = "bad_request", False
        else:
            code, retryable = "provider_error", True
        return NormalizedError(
            code=code,
            message=f"{provider} returned HTTP {status}",
            provider=provider,
            retryable=retryable,
            details={"status_code": status},
        )

    if isinstance(exc, (httpx.TransportError, openai.APIConnectionError)):
        return NormalizedError(
            code="provider_error",
            message=f"{provider} connection failed: {exc}",
            provider=provider,
            retryable=True,
            details={"exception_type": type(exc).__name__},
        )

    return NormalizedError(
        code="unknown",
        message=f"Unexpected error: {exc!s}",
        provider=provider,
        retryable=False,
        details={"exception_type": type(exc).__name__},
    )
