"""
pytest configuration for downloader tests.

Adds src directory to Python path for imports and sets up test environment.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

# Environment overrides would leak into config defaults
ENV_OVERRIDES = [
    "WEBDL_MAX_CONCURRENT_DOWNLOADS",
    "WEBDL_TIMEOUT_SECONDS",
    "WEBDL_CACHE_MINUTES",
    "WEBDL_REDIS_URL",
    "WEBDL_ALLOW_INSECURE_TLS",
    "WEBDL_LOG_LEVEL",
    "WEBDL_METRICS_PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test without WEBDL_* overrides from the developer's shell."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    yield
