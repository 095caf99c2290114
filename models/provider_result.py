from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from models.search_models import ProviderResponse

VALID_ERROR_CODES = {
    "timeout",
    "auth",
    "rate_limit",
    "bad_request",
    "provider_error",
    "empty",
    "config",
    "unknown",
}


@dataclass(frozen=True)
class NormalizedError:
    code: str
    message: str
    provider: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.code not in VALID_ERROR_CODES:
            object.__setattr__(self, "code", "unknown")

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "provider": self.provider,
            "retryable": self.retryable,
            "details": self.details,
        }


@dataclass(frozen=True)
class ProviderResult:
    """
    Outcome of one provider call: either a response or a normalized error.

    Providers never leak exceptions past this boundary; the orchestrator chains
    alternatives with or_else().
    """

    provider: str
    response: ProviderResponse | None = None
    error: NormalizedError | None = None
    latency_ms: int = 0

    def __post_init__(self):
        if (self.response is None) == (self.error is None):
            raise ValueError("ProviderResult needs exactly one of response or error")

    @classmethod
    def ok(cls, provider: str, response: ProviderResponse, latency_ms: int = 0) -> "ProviderResult":
        return cls(provider=provider, response=response, latency_ms=latency_ms)

    @classmethod
    def failed(cls, error: NormalizedError, latency_ms: int = 0) -> "ProviderResult":
        return cls(provider=error.provider, error=error, latency_ms=latency_ms)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def require_results(self) -> "ProviderResult":
        """Treat a successful but empty (no web, no images) response as an error."""
        if self.response is not None and self.response.is_empty:
            return ProviderResult.failed(
                NormalizedError(
                    code="empty",
                    message=f"No results from {self.provider}",
                    provider=self.provider,
                    retryable=False,
                ),
                latency_ms=self.latency_ms,
            )
        return self

    async def or_else(
        self, fallback_builder: Callable[[NormalizedError], Awaitable["ProviderResult"]]
    ) -> "ProviderResult":
        """Return self on success, otherwise the result of the fallback builder."""
        if self.is_success:
            return self
        return await fallback_builder(self.error)

    def unwrap_or(self, default: ProviderResponse) -> ProviderResponse:
        return self.response if self.response is not None else default
