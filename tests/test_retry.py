import asyncio

import httpx
import pytest

from models.errors import ProviderError
from orchestrator.retry import RetryPolicy, retry_on_transient_error, retry_with_backoff
from tools.web.history import BoundedHistory


class Flaky:
    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or RuntimeError("flaky")
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def _run(operation, policy=RetryPolicy(), **kwargs):
    delays = []

    async def sleep(delay):
        delays.append(delay)

    result = asyncio.run(retry_with_backoff(operation, policy, sleep=sleep, **kwargs))
    return result, delays


def test_policy_defaults():
    policy = RetryPolicy()
    assert policy.max_attempts == 4
    assert [policy.delay_for(i) for i in range(3)] == [1.0, 2.0, 4.0]


def test_succeeds_without_retry():
    operation = Flaky(0)
    result, delays = _run(operation)
    assert result == "ok"
    assert operation.calls == 1
    assert delays == []


def test_retries_then_succeeds():
    operation = Flaky(2)
    result, delays = _run(operation)
    assert result == "ok"
    assert operation.calls == 3
    assert delays == [1.0, 2.0]


def test_reraises_after_budget():
    operation = Flaky(10)
    with pytest.raises(RuntimeError, match="flaky"):
        _run(operation)
    assert operation.calls == 4


def test_non_retryable_error_is_raised_immediately():
    operation = Flaky(1, ProviderError("bad key", provider="openai", code="auth"))
    with pytest.raises(ProviderError):
        _run(operation, is_retryable=retry_on_transient_error)
    assert operation.calls == 1


def test_transient_classification():
    request = httpx.Request("GET", "https://api.example.com")
    server_error = httpx.HTTPStatusError(
        "boom", request=request, response=httpx.Response(503, request=request)
    )
    bad_request = httpx.HTTPStatusError(
        "bad", request=request, response=httpx.Response(400, request=request)
    )

    assert retry_on_transient_error(server_error)
    assert retry_on_transient_error(asyncio.TimeoutError())
    assert not retry_on_transient_error(bad_request)
    assert retry_on_transient_error(ProviderError("slow", provider="brave", retryable=True))


def test_bounded_history_evicts_oldest():
    history = BoundedHistory(capacity=2)
    for entry in ("a", "b", "c"):
        history.append(entry)
    assert history.items() == ["b", "c"]
    assert len(history) == 2
    assert history.capacity == 2


def test_bounded_history_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        BoundedHistory(capacity=0)
