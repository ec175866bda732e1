"""Shared fixtures for page downloader tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from page_downloader.metrics import MetricsRecorder


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status=200, body="<html></html>", content_type="text/html; charset=utf-8"):
        self.status = status
        self.reason = "OK" if status == 200 else "Error"
        self.headers = {"Content-Type": content_type} if content_type else {}
        self.charset = "utf-8"
        self._body = body.encode("utf-8")
        self.content = MagicMock()
        self.content.iter_chunked = self._iter_chunked

    async def _iter_chunked(self, size):
        for i in range(0, len(self._body), size):
            yield self._body[i:i + size]


@pytest.fixture
def metrics():
    recorder = MetricsRecorder()
    yield recorder
    recorder.close()


@pytest.fixture
def store():
    """Page store double: empty cache that accepts writes."""
    store = MagicMock()
    store.get = AsyncMock(return_value=None)
    store.set = AsyncMock()
    store.close = AsyncMock()
    return store


@pytest.fixture
def fake_response():
    """Factory for FakeResponse objects."""
    return FakeResponse
