"""Bounded exponential backoff for transient provider errors."""

import logging
import time
from typing import Callable, TypeVar
from tenacity import RetryError, Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential
from ..provider.capabilities import RetryPolicy
from ..utils.errors import ProviderError, ProviderTransientError
from ..utils.logging import get_logger

logger = get_logger("executor.retry")

T = TypeVar("T")


def call_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    description: str,
    retryable: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run operation, retrying ProviderTransientError per policy.
    
    Non-retryable calls get a single attempt. Exhausted retries escalate to
    ProviderError; permanent errors propagate unchanged.
    """
    attempts = policy.max_attempts if retryable else 1
    retrying = Retrying(
        retry=retry_if_exception_type(ProviderTransientError),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(
            multiplier=policy.initial_delay,
            max=policy.max_delay,
            exp_base=policy.multiplier,
        ),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    try:
        return retrying(operation)
    except RetryError as e:
        last = e.last_attempt.exception()
        raise ProviderError(f"{description} failed after {attempts} attempt(s): {last}") from last
