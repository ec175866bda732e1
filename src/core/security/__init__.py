"""
Security validation module.

Provides input validation and sanitization for security-sensitive operations:
    - validate_page_url(): absolute http(s) URL, no loopback targets
    - sanitize_url(): Remove credentials and query values from logged URLs
"""

from core.security.url_validation import (
    ALLOWED_SCHEMES,
    LOOPBACK_HOSTS,
    find_invalid_urls,
    is_loopback_host,
    is_valid_page_url,
    sanitize_url,
    validate_page_url,
)

__all__ = [
    "validate_page_url",
    "is_valid_page_url",
    "find_invalid_urls",
    "is_loopback_host",
    "sanitize_url",
    "ALLOWED_SCHEMES",
    "LOOPBACK_HOSTS",
]
