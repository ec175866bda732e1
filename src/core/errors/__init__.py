"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- DownloaderError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    DownloaderError,
    PreconditionError,
    TransientError,
    PermanentError,
    # Precondition errors
    ServiceDisposedError,
    MissingUrlsError,
    InvalidUrlError,
    # Per-item errors
    InvalidContentTypeError,
    TransientHttpError,
    PermanentHttpError,
    PoolExhaustedError,
    DownloadCancelledError,
    # Classification utilities
    classify_http_status,
    classify_exception,
    is_retryable_error,
    raise_for_status,
    describe_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "DownloaderError",
    "PreconditionError",
    "TransientError",
    "PermanentError",
    # Precondition errors
    "ServiceDisposedError",
    "MissingUrlsError",
    "InvalidUrlError",
    # Per-item errors
    "InvalidContentTypeError",
    "TransientHttpError",
    "PermanentHttpError",
    "PoolExhaustedError",
    "DownloadCancelledError",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
    "is_retryable_error",
    "raise_for_status",
    "describe_exception",
]
