"""
Retry with exponential backoff for async operations.

The delay before retry n (1-indexed) is backoff_base ** n seconds, so the
defaults wait 2s, 4s and 8s before the second, third and fourth attempts.
Jitter is off by default; many URLs failing together will retry in lockstep.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from core.errors.exceptions import is_retryable_error

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]
RetryCallback = Callable[[BaseException, int, float], None]


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff configuration."""

    # Retries after the first attempt (3 => up to 4 attempts)
    max_retries: int = 3

    # Delay before retry n is backoff_base ** n seconds
    backoff_base: float = 2.0

    # Upper bound on a single delay (None = unbounded)
    max_delay: Optional[float] = None

    # Randomise each delay between 50% and 100% of its nominal value
    jitter: bool = False

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.backoff_base < 1:
            raise ValueError(f"backoff_base must be >= 1, got {self.backoff_base}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def get_delay(self, retry_number: int) -> float:
        """
        Delay in seconds before the given retry.

        Args:
            retry_number: 1 for the first retry, 2 for the second, ...
        """
        delay = float(self.backoff_base**retry_number)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay


DEFAULT_RETRY = RetryConfig()


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig = DEFAULT_RETRY,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
    on_retry: Optional[RetryCallback] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Run operation, retrying retryable failures with backoff.

    The last exception is re-raised unchanged once retries are exhausted, or
    immediately when should_retry() rejects it.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Backoff configuration
        should_retry: Predicate deciding whether an exception is retried
        on_retry: Called with (exception, retry_number, delay) before sleeping
        sleep: Awaitable sleep used between attempts

    Returns:
        The first successful result of operation()
    """
    retry_number = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if retry_number >= config.max_retries or not should_retry(exc):
                raise
            retry_number += 1
            delay = config.get_delay(retry_number)
            if on_retry is not None:
                on_retry(exc, retry_number, delay)
            await sleep(delay)
