"""
Resilience patterns module.

Provides fault tolerance primitives:
    - RetryConfig / retry_async: exponential backoff for transient failures
    - run_cancellable / sleep_cancellable: event-driven cooperative cancellation
"""

from core.resilience.cancellation import (
    check_cancelled,
    is_cancelled,
    run_cancellable,
    sleep_cancellable,
)
from core.resilience.retry import DEFAULT_RETRY, RetryConfig, retry_async

__all__ = [
    "RetryConfig",
    "DEFAULT_RETRY",
    "retry_async",
    "run_cancellable",
    "sleep_cancellable",
    "check_cancelled",
    "is_cancelled",
]
