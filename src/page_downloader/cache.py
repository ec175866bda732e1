"""
Cache-aside gateway in front of the page fetcher.

Page bodies are cached in Redis under "webpage:" + sha256(normalized URL)
with a fixed TTL. A reachable but failing Redis never fails a download: read
errors count as a miss, write errors are logged.
"""

import asyncio
import hashlib
import logging
import time
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import aiohttp
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from core.errors.exceptions import DownloadCancelledError, DownloaderError, describe_exception
from core.logging.utilities import log_exception, log_with_context
from core.resilience.cancellation import check_cancelled, run_cancellable
from core.security.url_validation import sanitize_url, validate_page_url
from page_downloader.fetcher import RetryingFetcher
from page_downloader.metrics import (
    STATUS_CACHE_HIT,
    STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_SUCCESS,
    MetricsRecorder,
)
from page_downloader.models import PageResult

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "webpage:"
DEFAULT_TTL_SECONDS = 600


def normalize_url(url: str) -> str:
    """
    Canonical form used for cache keys.

    Lowercases scheme and host, drops the fragment and gives an empty path
    the root path. Query strings are kept verbatim.
    """
    parts = urlsplit(url.strip())
    netloc = parts.netloc
    if parts.hostname:
        userinfo, _, hostport = netloc.rpartition("@")
        netloc = (userinfo + "@" if userinfo else "") + hostport.lower()
    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", parts.query, ""))


def make_cache_key(url: str, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Cache key for a URL: prefix + hex sha256 of the normalized URL."""
    digest = hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()
    return f"{prefix}{digest}"


class RedisPageStore:
    """
    Thin async wrapper over a redis.asyncio client.

    Values are page bodies stored as text.
    """

    def __init__(self, client: "aioredis.Redis"):
        self.client = client
        self._closed = False

    @classmethod
    def from_url(
        cls,
        url: str,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
    ) -> "RedisPageStore":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.aclose()


class CacheGateway:
    """
    Resolve a URL to a PageResult, consulting the cache first.

    Every call records exactly one metrics observation with its wall time:
    cache_hit, success, failed or cancelled. Errors never escape resolve();
    they become failed results.

    Args:
        store: Page cache store (get/set)
        fetcher: Network fetcher used on cache miss
        metrics: Outcome recorder
        ttl_seconds: Expiry applied to cached bodies
        key_prefix: Cache key namespace
    """

    def __init__(
        self,
        store: RedisPageStore,
        fetcher: RetryingFetcher,
        metrics: MetricsRecorder,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        self.store = store
        self.fetcher = fetcher
        self.metrics = metrics
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    async def resolve(self, url: str, cancel_event: Optional[asyncio.Event] = None) -> PageResult:
        """
        Return the cached page or download and cache it.

        Args:
            url: URL to resolve
            cancel_event: Batch cancellation event

        Returns:
            PageResult (never raises for per-item failures)
        """
        start = time.perf_counter()

        is_valid, reason = validate_page_url(url)
        if not is_valid:
            log_with_context(logger, logging.WARNING, "Rejected URL", url=url, error_message=reason)
            return self._finish(PageResult.failure(url, "Invalid URL"), STATUS_FAILED, start)

        cache_key = make_cache_key(url, self.key_prefix)

        try:
            cached = await run_cancellable(self._read_cache(cache_key, url), cancel_event, url)
            # Cancellation wins over a cache hit
            check_cancelled(cancel_event, url)

            if cached:
                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Cache hit",
                    url=url,
                    cache_key=cache_key,
                    content_length=len(cached),
                )
                return self._finish(PageResult.success_result(url, cached), STATUS_CACHE_HIT, start)

            content = await self.fetcher.fetch(url, cancel_event)
            # An empty body would read back as a miss
            if content:
                await self._write_cache(cache_key, url, content)
            return self._finish(PageResult.success_result(url, content), STATUS_SUCCESS, start)

        except DownloadCancelledError:
            log_with_context(logger, logging.INFO, "Download cancelled", url=url)
            return self._finish(PageResult.cancelled(url), STATUS_CANCELLED, start)

        except (DownloaderError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            log_exception(
                logger,
                e,
                f"Error downloading {sanitize_url(url)}",
                level=logging.ERROR,
                include_traceback=False,
                url=url,
            )
            return self._finish(PageResult.failure(url, describe_exception(e)), STATUS_FAILED, start)

    async def _read_cache(self, cache_key: str, url: str) -> Optional[str]:
        try:
            return await self.store.get(cache_key)
        except RedisError as e:
            log_exception(
                logger,
                e,
                "Cache read failed, treating as miss",
                level=logging.WARNING,
                include_traceback=False,
                url=url,
                cache_key=cache_key,
            )
            return None

    async def _write_cache(self, cache_key: str, url: str, content: str) -> None:
        try:
            await self.store.set(cache_key, content, self.ttl_seconds)
        except RedisError as e:
            log_exception(
                logger,
                e,
                "Cache write failed",
                level=logging.WARNING,
                include_traceback=False,
                url=url,
                cache_key=cache_key,
            )
            return
        log_with_context(
            logger,
            logging.DEBUG,
            "Cached page",
            url=url,
            cache_key=cache_key,
            ttl_seconds=self.ttl_seconds,
        )

    def _finish(self, result: PageResult, status: str, start: float) -> PageResult:
        duration = time.perf_counter() - start
        self.metrics.record_outcome(status, duration)
        log_with_context(
            logger,
            logging.DEBUG,
            "Resolved URL",
            url=result.url,
            status=status,
            duration_ms=round(duration * 1000, 2),
        )
        return result
