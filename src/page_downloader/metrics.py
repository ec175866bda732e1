"""
Prometheus metrics for page downloads.

Every completed download attempt (cache hit, fetch, failure, cancellation)
and every rejected batch is observed exactly once:
- web_downloads_total: counter tagged by outcome status
- web_download_duration_seconds: duration histogram tagged by outcome status
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram

logger = logging.getLogger(__name__)

# Outcome status tags
STATUS_SUCCESS = "success"
STATUS_CACHE_HIT = "cache_hit"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"
STATUS_INVALID_URLS = "invalid_urls"

DURATION_BUCKETS = (
    0.005,
    0.01,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
)  # From 5ms (cache hits) to 2min (timeouts with backoff)


class MetricsRecorder:
    """
    Owns the download counter and duration histogram.

    Metrics live in their own CollectorRegistry unless one is supplied, so
    several services can coexist in one process. close() unregisters them;
    later observations are ignored.

    Args:
        registry: Registry to register metrics in (None = private registry)
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.downloads_total = Counter(
            "web_downloads_total",
            "Total number of web downloads",
            ["status"],
            registry=self.registry,
        )
        self.download_duration_seconds = Histogram(
            "web_download_duration_seconds",
            "Duration of web downloads in seconds",
            ["status"],
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def record_outcome(self, tag: str, duration_seconds: float, count: int = 1) -> None:
        """
        Record a terminal download outcome.

        Args:
            tag: Outcome status (success, cache_hit, failed, cancelled, invalid_urls)
            duration_seconds: Wall time of the attempt
            count: Downloads covered by this observation
        """
        if self._closed:
            logger.debug("Metrics recorder closed, dropping observation", extra={"status": tag})
            return
        self.downloads_total.labels(status=tag).inc(count)
        self.download_duration_seconds.labels(status=tag).observe(max(0.0, duration_seconds))

    def get_count(self, tag: str) -> float:
        """Current counter value for a tag (0.0 if never observed)."""
        value = self.registry.get_sample_value("web_downloads_total", {"status": tag})
        return value or 0.0

    def close(self) -> None:
        """Unregister metrics from the registry. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        for collector in (self.downloads_total, self.download_duration_seconds):
            try:
                self.registry.unregister(collector)
            except KeyError:
                logger.debug("Collector already unregistered")
