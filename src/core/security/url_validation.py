"""
URL validation for page downloads.

A URL is downloadable when it parses as an absolute URL, uses http or https,
and does not point at the local machine. The same predicate guards the batch
up front and each individual fetch.
"""

import ipaddress
import re
import socket
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import urlsplit, urlunsplit


# Allowed schemes for page downloads
ALLOWED_SCHEMES: Set[str] = {"https", "http"}

# Hostnames that always resolve to the local machine
LOOPBACK_HOSTS: Set[str] = {
    "localhost",
    "localhost.localdomain",
    "ip6-localhost",
    "ip6-loopback",
}

# Query parameters worth keeping readable in logs
SAFE_QUERY_KEYS: Set[str] = {"page", "id", "lang", "q"}

# Shorthand, integer, octal and hex IPv4 forms accepted by inet_aton (127.1, 2130706433, 0x7f000001)
_LEGACY_IPV4_RE = re.compile(r"^(0x[0-9a-f]+|[0-9]+)(\.(0x[0-9a-f]+|[0-9]+)){0,3}$")


def _parse_legacy_ipv4(host: str) -> Optional[ipaddress.IPv4Address]:
    """Decode a numeric IPv4 host the way resolvers do, or None if it is not one."""
    if not _LEGACY_IPV4_RE.match(host):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(host))
    except OSError:
        return None


def is_loopback_host(hostname: str) -> bool:
    """
    Check if hostname targets a loopback address.

    Args:
        hostname: Hostname or IP literal (brackets already stripped)

    Returns:
        True for localhost names, 127.0.0.0/8 and ::1

    Note:
        No DNS resolution happens here. A public name that resolves to
        127.0.0.1 is not caught.
    """
    host = hostname.lower().rstrip(".")
    if host in LOOPBACK_HOSTS or host.endswith(".localhost"):
        return True

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        ip = _parse_legacy_ipv4(host)
        if ip is None:
            return False

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped.is_loopback
    return ip.is_loopback


def validate_page_url(url: str) -> Tuple[bool, str]:
    """
    Validate URL for page download.

    Args:
        url: URL to validate

    Returns:
        (is_valid, error_message)
        - (True, "") if valid
        - (False, "error description") if invalid

    Examples:
        >>> validate_page_url("https://example.com/index.html")
        (True, '')

        >>> validate_page_url("ftp://example.com/file")
        (False, 'Scheme must be http or https, got ftp')

        >>> validate_page_url("http://localhost/x")
        (False, 'Loopback address not allowed: localhost')
    """
    if not isinstance(url, str) or not url.strip():
        return False, "Empty URL"

    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
        # Accessing .port validates the port component
        parsed.port
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    if not parsed.scheme or not parsed.netloc:
        return False, "URL must be absolute"

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return False, f"Scheme must be http or https, got {parsed.scheme}"

    if not hostname:
        return False, "No hostname in URL"

    if is_loopback_host(hostname):
        return False, f"Loopback address not allowed: {hostname}"

    return True, ""


def is_valid_page_url(url: str) -> bool:
    """Boolean form of validate_page_url()."""
    return validate_page_url(url)[0]


def find_invalid_urls(urls: Iterable[str]) -> List[Tuple[str, str]]:
    """
    Validate a batch of URLs.

    Args:
        urls: URLs to check

    Returns:
        List of (url, reason) for every URL that failed validation
    """
    invalid = []
    for url in urls:
        is_valid, reason = validate_page_url(url)
        if not is_valid:
            invalid.append((url, reason))
    return invalid


def sanitize_url(url: str) -> str:
    """
    Remove credentials and query values from a URL before logging.

    User-info is dropped; query values are masked except for a small set of
    harmless keys.

    Args:
        url: URL to sanitize

    Returns:
        URL safe to write to logs
    """
    if not isinstance(url, str) or not url:
        return url

    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname or ""
        port = parsed.port
    except ValueError:
        return url

    netloc = hostname
    if ":" in hostname:
        netloc = f"[{hostname}]"
    if port:
        netloc = f"{netloc}:{port}"

    query = parsed.query
    if query:
        parts = []
        for pair in query.split("&"):
            key, sep, _ = pair.partition("=")
            if sep and key.lower() not in SAFE_QUERY_KEYS:
                parts.append(f"{key}=[REDACTED]")
            else:
                parts.append(pair)
        query = "&".join(parts)

    return urlunsplit((parsed.scheme, netloc, parsed.path, query, ""))
