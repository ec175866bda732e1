"""Wire the downloader service from configuration."""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry

from core.download.pool import ClientPool
from page_downloader.cache import RedisPageStore
from page_downloader.config import AppConfig
from page_downloader.metrics import MetricsRecorder
from page_downloader.service import WebDownloaderService

logger = logging.getLogger(__name__)


def build_service(
    config: AppConfig,
    registry: Optional[CollectorRegistry] = None,
) -> WebDownloaderService:
    """
    Create a service that owns its redis store and client pool.

    Closing the service closes both. Nothing connects until the first batch
    runs: the redis client connects lazily and the pool creates its connector
    on first acquire.

    Args:
        config: Application configuration
        registry: Registry for download metrics (None = private registry)
    """
    dl = config.downloader
    store = RedisPageStore.from_url(
        config.redis.url,
        socket_timeout=config.redis.socket_timeout,
        socket_connect_timeout=config.redis.socket_connect_timeout,
    )
    pool = ClientPool(
        max_size=dl.pool_max_size,
        allow_insecure_tls=dl.allow_insecure_tls,
    )
    metrics = MetricsRecorder(registry)

    logger.debug(
        "Built downloader service",
        extra={"max_concurrent": dl.max_concurrent_downloads, "ttl_seconds": dl.cache_ttl_seconds},
    )
    return WebDownloaderService(store, pool, dl, metrics=metrics, owns_resources=True)
