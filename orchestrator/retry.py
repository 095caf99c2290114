import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from models.errors import ProviderError, classify_exception
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_s: float = 1.0
    multiplier: float = 2.0

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries

    def delay_for(self, retry_index: int) -> float:
        """Delay before retry number retry_index (0-based)."""
        return self.base_delay_s * (self.multiplier**retry_index)


def retry_on_any_error(exc: BaseException) -> bool:
    return True


def retry_on_transient_error(exc: BaseException) -> bool:
    """Retry timeouts, rate limits and 5xx; stop on auth, config and bad requests."""
    if isinstance(exc, ProviderError):
        return exc.error.retryable
    return classify_exception(exc, "unknown").retryable


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    is_retryable: Callable[[BaseException], bool] = retry_on_any_error,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Run operation, retrying with exponential backoff.

    Makes at most policy.max_attempts calls. The last exception is re-raised
    once retries are exhausted; a non-retryable exception is re-raised at once.
    """
    retry_index = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if retry_index >= policy.max_retries or not is_retryable(exc):
                raise
            delay = policy.delay_for(retry_index)
            logger.warning(
                f"Retry {retry_index + 1}/{policy.max_retries} for {label}",
                extra={
                    "extra_fields": {
                        "error": str(exc)[:200],
                        "error_type": type(exc).__name__,
                        "delay_s": delay,
                    }
                },
            )
            await sleep(delay)
            retry_index += 1
