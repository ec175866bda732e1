"""Tests for MetricsRecorder."""

from prometheus_client import CollectorRegistry

from page_downloader.metrics import (
    STATUS_CACHE_HIT,
    STATUS_INVALID_URLS,
    STATUS_SUCCESS,
    MetricsRecorder,
)


class TestMetricsRecorder:
    def test_counts_by_status(self):
        metrics = MetricsRecorder()

        metrics.record_outcome(STATUS_SUCCESS, 0.2)
        metrics.record_outcome(STATUS_SUCCESS, 0.3)
        metrics.record_outcome(STATUS_CACHE_HIT, 0.001)

        assert metrics.get_count(STATUS_SUCCESS) == 2
        assert metrics.get_count(STATUS_CACHE_HIT) == 1
        assert metrics.get_count("failed") == 0

    def test_batch_count(self):
        metrics = MetricsRecorder()
        metrics.record_outcome(STATUS_INVALID_URLS, 0.0, count=3)
        assert metrics.get_count(STATUS_INVALID_URLS) == 3

    def test_duration_histogram(self):
        registry = CollectorRegistry()
        metrics = MetricsRecorder(registry)

        metrics.record_outcome(STATUS_SUCCESS, 0.5)

        assert registry.get_sample_value(
            "web_download_duration_seconds_count", {"status": STATUS_SUCCESS}
        ) == 1
        assert registry.get_sample_value(
            "web_download_duration_seconds_sum", {"status": STATUS_SUCCESS}
        ) == 0.5

    def test_separate_recorders_do_not_collide(self):
        first = MetricsRecorder()
        second = MetricsRecorder()

        first.record_outcome(STATUS_SUCCESS, 0.1)

        assert first.get_count(STATUS_SUCCESS) == 1
        assert second.get_count(STATUS_SUCCESS) == 0

    def test_close_unregisters_and_is_idempotent(self):
        registry = CollectorRegistry()
        metrics = MetricsRecorder(registry)
        metrics.record_outcome(STATUS_SUCCESS, 0.1)

        metrics.close()
        metrics.close()

        assert metrics.closed
        assert registry.get_sample_value("web_downloads_total", {"status": STATUS_SUCCESS}) is None
        # Same names can be registered again after close
        MetricsRecorder(registry)

    def test_record_after_close_ignored(self):
        metrics = MetricsRecorder()
        metrics.close()
        metrics.record_outcome(STATUS_SUCCESS, 0.1)
        assert metrics.get_count(STATUS_SUCCESS) == 0
