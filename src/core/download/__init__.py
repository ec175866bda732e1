"""
Async download module.

Provides HTTP client plumbing decoupled from caching and orchestration:
    - ClientPool / PooledClient: reusable aiohttp handles over one connector
    - read_text(): bounded-buffer streaming of response bodies
    - is_html_content_type(): Content-Type validation helper
"""

from core.download.http_client import (
    DEFAULT_BUFFER_SIZE,
    PooledClient,
    create_connector,
    is_html_content_type,
    read_text,
)
from core.download.pool import ClientPool

__all__ = [
    "ClientPool",
    "PooledClient",
    "create_connector",
    "read_text",
    "is_html_content_type",
    "DEFAULT_BUFFER_SIZE",
]
