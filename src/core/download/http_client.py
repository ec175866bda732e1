"""
HTTP client primitives for page downloads.

Provides:
- create_connector(): shared TCP connector (strict TLS unless overridden)
- PooledClient: reusable client handle with per-call headers and reset
- read_text(): stream a response body through a fixed-size buffer
- is_html_content_type(): Content-Type check used by the fetcher
"""

import codecs
import io
import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Set

import aiohttp

logger = logging.getLogger(__name__)

# Read buffer for streamed bodies; peak memory per fetch stays near this
# size plus the decoded text.
DEFAULT_BUFFER_SIZE = 4096

DEFAULT_ENCODING = "utf-8"

HTML_MEDIA_TYPE = "text/html"


def is_html_content_type(content_type: Optional[str]) -> bool:
    """
    Check whether a Content-Type header declares HTML.

    Args:
        content_type: Raw Content-Type header value (may be None)

    Returns:
        True if the media type contains text/html
    """
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return HTML_MEDIA_TYPE in media_type


def create_connector(
    limit: int = 100,
    allow_insecure_tls: bool = False,
) -> aiohttp.TCPConnector:
    """
    Create the TCP connector shared by every pooled client.

    Args:
        limit: Total connection pool size
        allow_insecure_tls: Skip certificate verification. Test/lab use only.

    Returns:
        aiohttp.TCPConnector (must be created inside a running event loop)
    """
    if allow_insecure_tls:
        logger.warning(
            "TLS certificate validation is DISABLED for page downloads; "
            "do not use this setting outside test environments"
        )
        ssl_setting = False
    else:
        ssl_setting = ssl.create_default_context()

    return aiohttp.TCPConnector(limit=limit, ssl=ssl_setting)


class PooledClient:
    """
    Client handle lent out by ClientPool.

    Wraps an aiohttp.ClientSession that shares the pool's connector, so TCP
    and TLS state survives across fetches. Cookies are never stored and
    compressed bodies are decoded automatically.
    """

    def __init__(self, connector: aiohttp.BaseConnector):
        self.session = aiohttp.ClientSession(
            connector=connector,
            connector_owner=False,
            cookie_jar=aiohttp.DummyCookieJar(),
            auto_decompress=True,
        )
        self.headers: Dict[str, str] = {}
        self._open_responses: Set[aiohttp.ClientResponse] = set()

    @property
    def closed(self) -> bool:
        return self.session.closed

    @property
    def pending_count(self) -> int:
        return len(self._open_responses)

    @asynccontextmanager
    async def get(
        self, url: str, timeout: Optional[aiohttp.ClientTimeout] = None
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        Issue a GET and yield the response with its body still unread.

        Args:
            url: Absolute URL
            timeout: Per-call timeout
        """
        response = await self.session.get(
            url,
            headers=self.headers or None,
            timeout=timeout,
            allow_redirects=True,
        )
        self._open_responses.add(response)
        try:
            yield response
        finally:
            self._open_responses.discard(response)
            response.release()

    def reset(self) -> None:
        """Close responses still in flight and drop per-call headers."""
        for response in list(self._open_responses):
            response.close()
        self._open_responses.clear()
        self.headers.clear()

    async def close(self) -> None:
        self.reset()
        await self.session.close()


async def read_text(
    response: aiohttp.ClientResponse,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> str:
    """
    Stream a response body into a string.

    The body is consumed buffer_size bytes at a time and decoded
    incrementally, so multi-byte characters split across chunks decode
    correctly. Undecodable bytes are replaced rather than raising.

    Args:
        response: Response whose body has not been read
        buffer_size: Bytes per read

    Returns:
        Decoded body text
    """
    encoding = response.charset or DEFAULT_ENCODING
    try:
        decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    except LookupError:
        logger.debug(f"Unknown charset {encoding!r}, decoding as {DEFAULT_ENCODING}")
        decoder = codecs.getincrementaldecoder(DEFAULT_ENCODING)(errors="replace")

    text = io.StringIO()
    async for chunk in response.content.iter_chunked(buffer_size):
        text.write(decoder.decode(chunk))
    text.write(decoder.decode(b"", final=True))

    # Drop a leading byte order mark
    return text.getvalue().lstrip("\ufeff")
