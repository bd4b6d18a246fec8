"""Tests for retry with backoff."""

import pytest
from converge.executor.retry import call_with_retry
from converge.provider import RetryPolicy
from converge.utils.errors import NotFound, ProviderError, ProviderTransientError


class Flaky:
    """Raises the given errors in order, then returns 'ok'."""
    
    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0
    
    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def test_transient_errors_retried_until_success():
    sleeps = []
    operation = Flaky(ProviderTransientError("throttled"), ProviderTransientError("throttled"))
    policy = RetryPolicy(max_attempts=3, initial_delay=1, max_delay=10, multiplier=2)
    
    assert call_with_retry(operation, policy, "create x", sleep=sleeps.append) == "ok"
    assert operation.calls == 3
    assert sleeps == [1, 2]


def test_backoff_is_capped():
    sleeps = []
    operation = Flaky(*[ProviderTransientError("busy") for _ in range(4)])
    policy = RetryPolicy(max_attempts=5, initial_delay=1, max_delay=3, multiplier=2)
    
    call_with_retry(operation, policy, "read x", sleep=sleeps.append)
    assert sleeps == [1, 2, 3, 3]


def test_exhausted_retries_raise_provider_error():
    operation = Flaky(*[ProviderTransientError("timeout") for _ in range(5)])
    policy = RetryPolicy(max_attempts=2, initial_delay=0, max_delay=0)
    
    with pytest.raises(ProviderError) as exc_info:
        call_with_retry(operation, policy, "create x", sleep=lambda s: None)
    
    assert not isinstance(exc_info.value, ProviderTransientError)
    assert "create x failed after 2 attempt(s): timeout" in str(exc_info.value)
    assert operation.calls == 2


def test_not_retryable_gets_single_attempt():
    operation = Flaky(ProviderTransientError("timeout"))
    policy = RetryPolicy(max_attempts=5, initial_delay=0, max_delay=0)
    
    with pytest.raises(ProviderError, match="1 attempt"):
        call_with_retry(operation, policy, "update x", retryable=False, sleep=lambda s: None)
    assert operation.calls == 1


@pytest.mark.parametrize("error", [ProviderError("denied"), NotFound("network", "network-9")])
def test_permanent_errors_propagate_unchanged(error):
    operation = Flaky(error)
    policy = RetryPolicy(max_attempts=5, initial_delay=0, max_delay=0)
    
    with pytest.raises(type(error)) as exc_info:
        call_with_retry(operation, policy, "op", sleep=lambda s: None)
    assert exc_info.value is error
    assert operation.calls == 1
