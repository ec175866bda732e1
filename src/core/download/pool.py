"""
Pool of reusable HTTP client handles.

All handles share one connector and one transport configuration. A handle is
lent to exactly one fetch at a time and reset before it is reused.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Set

import aiohttp

from core.download.http_client import PooledClient, create_connector
from core.errors.exceptions import PoolExhaustedError

logger = logging.getLogger(__name__)


class ClientPool:
    """
    Lends PooledClient handles for the duration of one fetch.

    Usage:
        pool = ClientPool(max_size=10)
        async with pool.lease() as client:
            async with client.get(url) as response:
                ...
        await pool.close()

    Args:
        max_size: Maximum live handles (None = create on demand without limit).
            acquire() raises PoolExhaustedError when every handle is lent out.
        max_idle: Idle handles kept for reuse; extras are closed on release
        connection_limit: Total TCP connections of the shared connector
        allow_insecure_tls: Disable certificate validation (test/lab only)
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        max_idle: int = 16,
        connection_limit: int = 100,
        allow_insecure_tls: bool = False,
    ):
        if max_size is not None and max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")

        self.max_size = max_size
        self.max_idle = max_idle
        self.connection_limit = connection_limit
        self.allow_insecure_tls = allow_insecure_tls

        self._connector: Optional[aiohttp.BaseConnector] = None
        self._idle: List[PooledClient] = []
        self._in_use: Set[PooledClient] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> int:
        """Live handles (idle + lent out)."""
        return len(self._idle) + len(self._in_use)

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def in_use_count(self) -> int:
        return len(self._in_use)

    def _get_connector(self) -> aiohttp.BaseConnector:
        # Created lazily: aiohttp connectors need a running event loop
        if self._connector is None or self._connector.closed:
            self._connector = create_connector(
                limit=self.connection_limit,
                allow_insecure_tls=self.allow_insecure_tls,
            )
        return self._connector

    async def acquire(self) -> PooledClient:
        """
        Borrow a client handle.

        Returns:
            An idle handle, or a new one if none is idle

        Raises:
            PoolExhaustedError: max_size handles are already lent out
            RuntimeError: Pool has been closed
        """
        if self._closed:
            raise RuntimeError("ClientPool is closed")

        while self._idle:
            client = self._idle.pop()
            if not client.closed:
                self._in_use.add(client)
                return client

        if self.max_size is not None and self.size >= self.max_size:
            raise PoolExhaustedError(self.max_size)

        client = PooledClient(self._get_connector())
        self._in_use.add(client)
        logger.debug(
            "Created pooled client",
            extra={"pool_size": self.size},
        )
        return client

    async def release(self, client: PooledClient) -> None:
        """
        Return a handle to the pool.

        The handle is reset (open responses closed, per-call headers cleared)
        before it becomes eligible for reuse.
        """
        self._in_use.discard(client)
        client.reset()

        if self._closed or client.closed or len(self._idle) >= self.max_idle:
            await client.close()
            return

        self._idle.append(client)

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[PooledClient]:
        """Borrow a handle for the body of an async with block."""
        client = await self.acquire()
        try:
            yield client
        finally:
            await self.release(client)

    async def close(self) -> None:
        """Close every handle and the shared connector. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        clients = self._idle + list(self._in_use)
        self._idle.clear()
        self._in_use.clear()
        for client in clients:
            await client.close()

        if self._connector is not None:
            await self._connector.close()
            self._connector = None

        logger.debug("Client pool closed")
