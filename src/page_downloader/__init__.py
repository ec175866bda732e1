"""Page Downloader - batch HTML downloads with caching, retry and bounded concurrency."""

__version__ = "1.0.0"

# Essential exports only
__all__ = ["__version__"]
