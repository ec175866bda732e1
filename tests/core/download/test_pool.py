"""Tests for ClientPool."""

import pytest

from core.download.pool import ClientPool
from core.errors.exceptions import PoolExhaustedError


@pytest.fixture
def pool():
    """Small pool; connector is created on first acquire, tests close it."""
    return ClientPool(max_size=2, max_idle=1)


class TestClientPool:
    def test_rejects_invalid_max_size(self):
        with pytest.raises(ValueError):
            ClientPool(max_size=0)

    @pytest.mark.asyncio
    async def test_reuses_released_client(self, pool):
        first = await pool.acquire()
        await pool.release(first)
        second = await pool.acquire()

        assert second is first
        assert pool.size == 1
        await pool.release(second)
        await pool.close()

    @pytest.mark.asyncio
    async def test_client_never_lent_twice(self, pool):
        a = await pool.acquire()
        b = await pool.acquire()

        assert a is not b
        assert pool.in_use_count == 2
        await pool.release(a)
        await pool.release(b)
        await pool.close()

    @pytest.mark.asyncio
    async def test_exhausted(self, pool):
        a = await pool.acquire()
        b = await pool.acquire()

        with pytest.raises(PoolExhaustedError) as exc_info:
            await pool.acquire()
        assert str(exc_info.value) == "HttpClient pool exhausted"

        await pool.release(a)
        await pool.release(b)
        await pool.close()

    @pytest.mark.asyncio
    async def test_release_resets_headers(self, pool):
        client = await pool.acquire()
        client.headers["X-Test"] = "1"
        await pool.release(client)

        assert client.headers == {}
        await pool.close()

    @pytest.mark.asyncio
    async def test_extra_idle_clients_closed(self, pool):
        a = await pool.acquire()
        b = await pool.acquire()
        await pool.release(a)
        await pool.release(b)

        assert pool.idle_count == 1
        assert b.closed
        assert not a.closed
        await pool.close()

    @pytest.mark.asyncio
    async def test_lease_returns_client(self, pool):
        async with pool.lease() as client:
            assert pool.in_use_count == 1
        assert pool.in_use_count == 0
        assert pool.idle_count == 1
        assert not client.closed
        await pool.close()

    @pytest.mark.asyncio
    async def test_shares_one_connector(self, pool):
        a = await pool.acquire()
        b = await pool.acquire()
        assert a.session.connector is b.session.connector
        await pool.release(a)
        await pool.release(b)
        await pool.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_blocks_acquire(self):
        pool = ClientPool()
        client = await pool.acquire()
        await pool.close()
        await pool.close()

        assert pool.closed
        assert client.closed
        with pytest.raises(RuntimeError):
            await pool.acquire()

    @pytest.mark.asyncio
    async def test_release_after_close_closes_client(self):
        pool = ClientPool()
        client = await pool.acquire()
        await pool.close()
        await pool.release(client)
        assert client.closed
