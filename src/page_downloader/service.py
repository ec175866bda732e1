"""
Batch web page downloader.

WebDownloaderService validates a batch of URLs up front, fans out one
asynchronous unit per URL bounded by a semaphore, and returns one PageResult
per URL in completion order. Only precondition violations (disposed service,
missing or invalid URLs) raise; every per-URL outcome, cancellation included,
is reported as a result.
"""

import asyncio
import logging
import time
import warnings
from enum import Enum
from typing import Callable, List, Optional, Sequence

from core.download.pool import ClientPool
from core.errors.exceptions import (
    DownloadCancelledError,
    InvalidUrlError,
    MissingUrlsError,
    ServiceDisposedError,
)
from core.logging.context import log_context
from core.logging.setup import generate_batch_id
from core.logging.utilities import log_exception, log_with_context
from core.resilience.cancellation import run_cancellable
from core.resilience.retry import RetryConfig
from core.security.url_validation import find_invalid_urls, sanitize_url
from page_downloader.cache import CacheGateway, RedisPageStore
from page_downloader.config import DownloaderConfig
from page_downloader.fetcher import RetryingFetcher
from page_downloader.metrics import (
    STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_INVALID_URLS,
    MetricsRecorder,
)
from page_downloader.models import PageResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class ServiceState(Enum):
    ACTIVE = "active"
    DISPOSED = "disposed"


class WebDownloaderService:
    """
    Downloads batches of HTML pages with caching, retry and bounded concurrency.

    Usage:
        async with build_service(config) as service:
            results = await service.download_pages(urls, progress=print)

    Args:
        store: Redis page store used by the cache gateway
        pool: Client pool lending HTTP handles to the fetcher
        config: Concurrency, timeout, cache and retry settings
        metrics: Outcome recorder (default: new recorder with private registry)
        owns_resources: Close pool and store when the service is closed

    Raises:
        ValueError: store or pool is None
    """

    def __init__(
        self,
        store: RedisPageStore,
        pool: ClientPool,
        config: Optional[DownloaderConfig] = None,
        metrics: Optional[MetricsRecorder] = None,
        owns_resources: bool = False,
    ):
        if store is None:
            raise ValueError("store is required")
        if pool is None:
            raise ValueError("pool is required")

        self.config = config or DownloaderConfig()
        self.store = store
        self.pool = pool
        self.metrics = metrics or MetricsRecorder()
        self.owns_resources = owns_resources
        self.state = ServiceState.ACTIVE

        self.fetcher = RetryingFetcher(
            pool,
            timeout_seconds=self.config.timeout_seconds,
            retry_config=RetryConfig(
                max_retries=self.config.max_retries,
                backoff_base=self.config.backoff_base,
            ),
            buffer_size=self.config.buffer_size,
        )
        self.gateway = CacheGateway(
            store,
            self.fetcher,
            self.metrics,
            ttl_seconds=self.config.cache_ttl_seconds,
            key_prefix=self.config.cache_key_prefix,
        )

    @property
    def disposed(self) -> bool:
        return self.state == ServiceState.DISPOSED

    async def download_pages(
        self,
        urls: Optional[Sequence[str]],
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[PageResult]:
        """
        Download every URL in the batch.

        Args:
            urls: Absolute http(s) URLs
            progress: Called with completed * 100 // total after each URL
            cancel_event: Setting it turns every unfinished URL into a
                "Download cancelled" result; the call still returns normally

        Returns:
            One PageResult per URL, in completion order (empty for an empty batch)

        Raises:
            ServiceDisposedError: close() was already called
            MissingUrlsError: urls is None
            InvalidUrlError: At least one URL failed validation (nothing downloaded)
            TypeError: urls is a single string
        """
        if self.disposed:
            raise ServiceDisposedError(self.__class__.__name__)
        if urls is None:
            raise MissingUrlsError("urls")
        if isinstance(urls, (str, bytes)):
            raise TypeError("urls must be a sequence of URL strings, not a single string")

        batch = list(urls)
        if not batch:
            logger.warning("No URLs provided.")
            return []

        invalid = find_invalid_urls(batch)
        if invalid:
            self.metrics.record_outcome(STATUS_INVALID_URLS, 0.0, count=len(batch))
            bad_urls = [url for url, _ in invalid]
            log_with_context(
                logger,
                logging.ERROR,
                "Invalid URLs provided.",
                batch_size=len(batch),
                invalid_urls=len(bad_urls),
            )
            raise InvalidUrlError(
                "Invalid URLs provided.",
                urls=bad_urls,
                reasons=[reason for _, reason in invalid],
            )

        with log_context(batch_id=generate_batch_id()):
            return await self._run_batch(batch, progress, cancel_event)

    async def _run_batch(
        self,
        batch: List[str],
        progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> List[PageResult]:
        total = len(batch)
        max_concurrent = self.config.max_concurrent_downloads
        semaphore = asyncio.Semaphore(max_concurrent)
        results: List[PageResult] = []
        completed = 0

        log_with_context(
            logger,
            logging.INFO,
            "Starting batch download",
            batch_size=total,
            max_concurrent=max_concurrent,
        )

        def report(result: PageResult) -> None:
            nonlocal completed
            # No await between increment and report: percentages never go backwards
            results.append(result)
            completed += 1
            percent = completed * 100 // total
            if progress is not None:
                try:
                    progress(percent)
                except Exception as e:
                    log_exception(
                        logger,
                        e,
                        "Progress callback failed",
                        level=logging.WARNING,
                        progress=percent,
                    )
            log_with_context(
                logger,
                logging.INFO,
                f"Downloaded {sanitize_url(result.url)} ({percent}%)",
                url=result.url,
                progress=percent,
            )

        async def bounded_resolve(url: str) -> None:
            start = time.perf_counter()
            try:
                await run_cancellable(
                    semaphore.acquire(),
                    cancel_event,
                    url,
                    on_abandoned=lambda _: semaphore.release(),
                )
            except DownloadCancelledError:
                self.metrics.record_outcome(STATUS_CANCELLED, time.perf_counter() - start)
                report(PageResult.cancelled(url))
                return

            try:
                result = await self.gateway.resolve(url, cancel_event)
            except Exception as e:
                log_exception(logger, e, "Unhandled exception in download batch", url=url)
                self.metrics.record_outcome(STATUS_FAILED, time.perf_counter() - start)
                result = PageResult.failure(url, f"Unexpected error: {e}")
            finally:
                semaphore.release()
            report(result)

        await asyncio.gather(*(bounded_resolve(url) for url in batch))

        succeeded = sum(1 for r in results if r.success)
        cancelled = sum(1 for r in results if r.is_cancelled)
        log_with_context(
            logger,
            logging.INFO,
            "Batch download complete",
            batch_size=total,
            records_succeeded=succeeded,
            records_failed=total - succeeded - cancelled,
            records_cancelled=cancelled,
        )
        return results

    async def close(self) -> None:
        """
        Dispose the service. Safe to call more than once.

        Unregisters metrics. The client pool and redis store are closed only
        when the service owns them.
        """
        if self.disposed:
            return
        self.state = ServiceState.DISPOSED
        self.metrics.close()
        if self.owns_resources:
            await self.pool.close()
            await self.store.close()
        logger.debug("Downloader service closed")

    async def __aenter__(self) -> "WebDownloaderService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __del__(self):
        if getattr(self, "state", ServiceState.DISPOSED) == ServiceState.ACTIVE:
            warnings.warn(
                f"{self.__class__.__name__} was not closed; call close() or use 'async with'",
                ResourceWarning,
                stacklevel=2,
            )
            self.metrics.close()
