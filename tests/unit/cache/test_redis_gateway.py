"""Tests for the Redis cache gateway with a mocked client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from restocache.cache.redis import RedisCache
from restocache.core.gateways import CacheStatus


def _pipeline_client(replies: list) -> tuple[MagicMock, MagicMock]:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=replies)
    context = MagicMock()
    context.__aenter__.return_value = pipe
    context.__aexit__.return_value = False
    client = MagicMock()
    client.pipeline = MagicMock(return_value=context)
    return client, pipe


class TestRedisCache:
    """Tests for single-key operations."""

    @pytest.mark.asyncio
    async def test_get_hit(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=b"value")
        result = await RedisCache(client).get("k")

        assert result.status is CacheStatus.HIT
        assert result.value == b"value"

    @pytest.mark.asyncio
    async def test_get_miss(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        result = await RedisCache(client).get("k")

        assert result.status is CacheStatus.MISS
        assert result.ok

    @pytest.mark.asyncio
    async def test_get_connection_error_is_soft(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        result = await RedisCache(client).get("k")

        assert result.status is CacheStatus.ERROR
        assert not result.ok
        assert "refused" in result.error

    @pytest.mark.asyncio
    async def test_get_timeout_is_soft(self) -> None:
        async def slow_get(key: str) -> bytes:
            await asyncio.sleep(1)
            return b"late"

        client = MagicMock()
        client.get = slow_get
        result = await RedisCache(client, timeout=0.01).get("k")

        assert result.status is CacheStatus.ERROR
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_set_passes_ttl(self) -> None:
        client = MagicMock()
        client.set = AsyncMock(return_value=True)
        result = await RedisCache(client, ttl=60).set("k", b"v")

        assert result.status is CacheStatus.STORED
        client.set.assert_awaited_once_with("k", b"v", ex=60)

    @pytest.mark.asyncio
    async def test_set_error_is_soft(self) -> None:
        client = MagicMock()
        client.set = AsyncMock(side_effect=RedisConnectionError("down"))
        result = await RedisCache(client).set("k", b"v")

        assert result.status is CacheStatus.ERROR

    @pytest.mark.asyncio
    async def test_delete_outcomes(self) -> None:
        client = MagicMock()
        client.delete = AsyncMock(side_effect=[1, 0])
        cache = RedisCache(client)

        assert (await cache.delete("k")).status is CacheStatus.DELETED
        assert (await cache.delete("k")).status is CacheStatus.ABSENT

    @pytest.mark.asyncio
    async def test_health_check(self) -> None:
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        assert await RedisCache(client).health_check() is True

        client.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        assert await RedisCache(client).health_check() is False


class TestDeleteMany:
    """Tests for pipelined batch deletes."""

    @pytest.mark.asyncio
    async def test_per_key_outcomes(self) -> None:
        client, pipe = _pipeline_client([1, 0, ResponseError("WRONGTYPE")])
        results = await RedisCache(client).delete_many(["a", "b", "c"])

        assert [r.status for r in results] == [
            CacheStatus.DELETED,
            CacheStatus.ABSENT,
            CacheStatus.ERROR,
        ]
        assert pipe.delete.call_count == 3
        client.pipeline.assert_called_once_with(transaction=False)

    @pytest.mark.asyncio
    async def test_pipeline_failure_fails_batch(self) -> None:
        client, pipe = _pipeline_client([])
        pipe.execute = AsyncMock(side_effect=RedisConnectionError("reset"))
        results = await RedisCache(client).delete_many(["a", "b"])

        assert [r.status for r in results] == [CacheStatus.ERROR, CacheStatus.ERROR]

    @pytest.mark.asyncio
    async def test_empty_batch(self) -> None:
        client, _ = _pipeline_client([])
        assert await RedisCache(client).delete_many([]) == []
        client.pipeline.assert_not_called()
