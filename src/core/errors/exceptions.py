"""
Exception types and error classification for the page downloader.

Provides:
- ErrorCategory enum for retry and reporting decisions
- Typed exception hierarchy (precondition vs per-item errors)
- Classification utilities used by the retry layer
"""

import asyncio
from enum import Enum
from typing import Optional, Sequence

import aiohttp


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should retry with backoff
                   (e.g., connection resets, timeouts, 429/503 responses)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., invalid input, 404, disposed service)
        CANCELLED: The caller asked the batch to stop
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class DownloaderError(Exception):
    """
    Base exception for all downloader errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error should trigger a retry."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Precondition Errors (raised from the batch operation itself)
# =============================================================================


class PreconditionError(DownloaderError):
    """Base class for errors that abort a batch before any work starts."""

    category = ErrorCategory.PERMANENT


class ServiceDisposedError(PreconditionError):
    """Operation attempted on a service that has been closed."""

    def __init__(self, service_name: str = "WebDownloaderService"):
        super().__init__(f"Cannot access a disposed object: {service_name}")
        self.service_name = service_name


class MissingUrlsError(PreconditionError):
    """The URL sequence was None."""

    def __init__(self, argument: str = "urls"):
        super().__init__(f"Value cannot be None: {argument}")
        self.argument = argument


class InvalidUrlError(PreconditionError):
    """
    One or more URLs failed the validity predicate.

    Raised per URL by the fetcher and for a whole batch by the orchestrator.
    """

    def __init__(
        self,
        message: str = "Invalid URLs provided.",
        urls: Optional[Sequence[str]] = None,
        reasons: Optional[Sequence[str]] = None,
    ):
        super().__init__(
            message,
            context={"urls": list(urls or []), "reasons": list(reasons or [])},
        )
        self.urls = list(urls or [])
        self.reasons = list(reasons or [])


# =============================================================================
# Per-item Errors (captured into a failed PageResult)
# =============================================================================


class TransientError(DownloaderError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class InvalidContentTypeError(TransientError):
    """
    Response did not declare an HTML content type.

    Retried like a network error. A non-HTML response is rarely transient,
    see DESIGN.md.
    """

    def __init__(self, content_type: Optional[str] = None):
        super().__init__("Invalid content type", context={"content_type": content_type})
        self.content_type = content_type


class TransientHttpError(TransientError):
    """Origin answered 429 or 5xx."""

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(
            f"Response status code does not indicate success: {status_code} {reason}".rstrip(),
            context={"status_code": status_code},
        )
        self.status_code = status_code


class PermanentError(DownloaderError):
    """Base class for non-retriable per-item errors."""

    category = ErrorCategory.PERMANENT


class PermanentHttpError(PermanentError):
    """Origin answered a non-success status that retrying will not fix."""

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(
            f"Response status code does not indicate success: {status_code} {reason}".rstrip(),
            context={"status_code": status_code},
        )
        self.status_code = status_code


class PoolExhaustedError(PermanentError):
    """Client pool could not supply a handle."""

    def __init__(self, max_size: Optional[int] = None):
        super().__init__("HttpClient pool exhausted", context={"max_size": max_size})
        self.max_size = max_size


class DownloadCancelledError(DownloaderError):
    """The batch cancellation event fired while this item was in flight."""

    category = ErrorCategory.CANCELLED

    def __init__(self, url: Optional[str] = None):
        super().__init__("Download cancelled", context={"url": url})
        self.url = url


# =============================================================================
# Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    Args:
        status_code: HTTP response status code

    Returns:
        ErrorCategory for the status code
    """
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error
    if status_code == 429 or status_code >= 500:
        return ErrorCategory.TRANSIENT
    if status_code == 408:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.PERMANENT


def raise_for_status(status_code: int, reason: str = "") -> None:
    """Raise the matching typed error for a non-2xx status."""
    if 200 <= status_code < 300:
        return
    if classify_http_status(status_code) == ErrorCategory.TRANSIENT:
        raise TransientHttpError(status_code, reason)
    raise PermanentHttpError(status_code, reason)


def classify_exception(exc: BaseException) -> ErrorCategory:
    """
    Classify any exception into an error category.

    Args:
        exc: Exception to classify

    Returns:
        ErrorCategory for the exception
    """
    if isinstance(exc, DownloaderError):
        return exc.category

    if isinstance(exc, asyncio.CancelledError):
        return ErrorCategory.CANCELLED

    # Timeouts surface as asyncio.TimeoutError from aiohttp's ClientTimeout
    if isinstance(exc, asyncio.TimeoutError):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, aiohttp.ClientResponseError):
        return classify_http_status(exc.status)

    if isinstance(exc, aiohttp.InvalidURL):
        return ErrorCategory.PERMANENT

    # Connection errors, payload errors, server disconnects
    if isinstance(exc, (aiohttp.ClientError, OSError)):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception should be retried by the fetch retry policy."""
    return classify_exception(exc) == ErrorCategory.TRANSIENT


def describe_exception(exc: BaseException) -> str:
    """
    Message reported to callers for a failed item.

    Uses the exception's own message; timeouts and other exceptions with an
    empty message get a readable fallback.
    """
    message = str(exc)
    if message:
        return message
    if isinstance(exc, asyncio.TimeoutError):
        return "The operation timed out"
    return exc.__class__.__name__
