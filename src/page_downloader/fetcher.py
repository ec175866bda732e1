"""
Retrying page fetcher.

Issues one GET per URL through a pooled client, checks the status and that
the response declares HTML, streams the body, and retries transient failures
with exponential backoff. Cancellation short-circuits retries immediately.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from core.download.http_client import DEFAULT_BUFFER_SIZE, PooledClient, is_html_content_type, read_text
from core.download.pool import ClientPool
from core.errors.exceptions import InvalidContentTypeError, InvalidUrlError, raise_for_status
from core.logging.utilities import log_with_context
from core.resilience.cancellation import check_cancelled, run_cancellable, sleep_cancellable
from core.resilience.retry import DEFAULT_RETRY, RetryConfig, retry_async
from core.security.url_validation import sanitize_url, validate_page_url

logger = logging.getLogger(__name__)


class RetryingFetcher:
    """
    Fetch HTML pages with retry and backoff.

    Retried: connection errors, timeouts, 408/429/5xx responses and responses
    without an HTML Content-Type. Not retried: invalid URLs (rejected before
    any request), other non-2xx statuses, cancellation.

    Args:
        pool: Client pool to borrow handles from
        timeout_seconds: Total timeout per attempt
        retry_config: Backoff configuration (default: 3 retries, 2s/4s/8s)
        buffer_size: Bytes read per chunk while streaming the body
    """

    def __init__(
        self,
        pool: ClientPool,
        timeout_seconds: float = 30,
        retry_config: RetryConfig = DEFAULT_RETRY,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.pool = pool
        self.timeout_seconds = timeout_seconds
        self.retry_config = retry_config
        self.buffer_size = buffer_size
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def fetch(self, url: str, cancel_event: Optional[asyncio.Event] = None) -> str:
        """
        Download a page body.

        The borrowed client goes back to the pool on every exit path.

        Args:
            url: Absolute http(s) URL
            cancel_event: Batch cancellation event

        Returns:
            Page body as text

        Raises:
            InvalidUrlError: URL failed validation (no request made)
            DownloadCancelledError: cancel_event fired
            PoolExhaustedError: No client handle available
            Exception: The last attempt's error once retries are exhausted
        """
        is_valid, reason = validate_page_url(url)
        if not is_valid:
            raise InvalidUrlError("Invalid URL", urls=[url], reasons=[reason])

        check_cancelled(cancel_event, url)

        client = await self.pool.acquire()
        try:
            log_with_context(logger, logging.DEBUG, "Downloading", url=url)

            def on_retry(exc: BaseException, retry_number: int, delay: float) -> None:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"Retry {retry_number} for {sanitize_url(url)} after {delay:g}s due to {exc}",
                    url=url,
                    retry_count=retry_number,
                    delay_seconds=delay,
                    error_message=str(exc) or exc.__class__.__name__,
                )

            return await retry_async(
                lambda: run_cancellable(self._attempt(client, url), cancel_event, url),
                config=self.retry_config,
                on_retry=on_retry,
                sleep=lambda delay: sleep_cancellable(delay, cancel_event, url),
            )
        finally:
            await self.pool.release(client)

    async def _attempt(self, client: PooledClient, url: str) -> str:
        """Single GET: validate status and Content-Type, then stream the body."""
        async with client.get(url, timeout=self._timeout) as response:
            raise_for_status(response.status, response.reason or "")

            content_type = response.headers.get("Content-Type")
            if not is_html_content_type(content_type):
                raise InvalidContentTypeError(content_type)

            body = await read_text(response, self.buffer_size)

        log_with_context(
            logger,
            logging.DEBUG,
            "Successfully downloaded",
            url=url,
            http_status=response.status,
            content_length=len(body),
        )
        return body
