"""
Retry mechanism for resilient operations.

``execute_with_retry`` races each attempt against a per-attempt timeout and
sleeps between failed attempts. With the default linear strategy the sleep
after attempt ``n`` (0-based) is ``retry_delay * (n + 1)``, so the worst-case
latency of a call is bounded by ``RetryConfig.worst_case_latency()``.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from shared.errors import CacheTimeoutError
from shared.logging import get_logger

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_retries: int = 3,
                 retry_delay: float = 1.0,
                 timeout: Optional[float] = 5.0,
                 max_delay: Optional[float] = None,
                 exponential_base: float = 2.0,
                 jitter: bool = False,
                 backoff_strategy: str = "linear"):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Backoff to sleep after the failed 0-based ``attempt``."""
        return _calculate_delay(attempt, self)

    def worst_case_latency(self) -> float:
        """Upper bound in seconds for a call that fails on every attempt.

        Jitter is excluded; with jitter enabled each sleep may exceed its
        nominal value by up to 10%.
        """
        if self.timeout is None:
            raise ValueError("worst case latency is unbounded without a timeout")
        backoff = sum(
            _nominal_delay(attempt, self) for attempt in range(self.max_retries)
        )
        return self.max_attempts * self.timeout + backoff


async def execute_with_retry(operation: Callable[[], Awaitable[T]],
                             config: RetryConfig,
                             name: str = "operation") -> T:
    """Run ``operation`` until it succeeds or ``config.max_retries`` is spent.

    The last error is re-raised unchanged once every attempt has failed.
    A timed-out attempt is cancelled by ``asyncio.wait_for`` and reported as
    :class:`CacheTimeoutError`. Cancellation of the calling task is not
    retried.
    """
    logger = get_logger(f"retry.{name}")
    last_exception: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        try:
            if config.timeout is None:
                result = await operation()
            else:
                try:
                    result = await asyncio.wait_for(operation(), timeout=config.timeout)
                except asyncio.TimeoutError as exc:
                    raise CacheTimeoutError(int(round(config.timeout * 1000)), name) from exc

            if attempt > 0:
                logger.info("Retry succeeded", attempt=attempt + 1, operation=name)

            return result

        except Exception as e:
            last_exception = e

            if attempt == config.max_retries:
                logger.debug(
                    "All retry attempts exhausted",
                    attempt=attempt + 1,
                    max_attempts=config.max_attempts,
                    operation=name,
                    error=str(e),
                )
                break

            delay = config.delay_for(attempt)

            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt + 1,
                max_attempts=config.max_attempts,
                delay=delay,
                operation=name,
                error=str(e),
            )

            await asyncio.sleep(delay)

    assert last_exception is not None
    raise last_exception


def _nominal_delay(attempt: int, config: RetryConfig) -> float:
    step = attempt + 1
    if config.backoff_strategy == "exponential":
        delay = config.retry_delay * (config.exponential_base ** attempt)
    elif config.backoff_strategy == "linear":
        delay = config.retry_delay * step
    else:
        delay = config.retry_delay

    if config.max_delay is not None:
        delay = min(delay, config.max_delay)

    return delay


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay between retry attempts."""
    delay = _nominal_delay(attempt, config)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
