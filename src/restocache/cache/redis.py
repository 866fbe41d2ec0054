"""Redis cache gateway for restocache.

Provides async Redis get/set/delete with per-call timeouts. Failures are
reported as ``CacheResult`` values with ``ERROR`` status instead of being
raised, so callers can treat an unreachable cache as an empty one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, Sequence, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from restocache.config import settings
from restocache.core.errors import CacheUnavailableError
from restocache.core.gateways import CacheResult, CacheStatus
from restocache.observability.metrics import get_metrics

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            decode_responses=False,
            socket_timeout=settings.cache_timeout,
            socket_connect_timeout=settings.cache_timeout,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisCache:
    """Cache gateway over a Redis client.

    ``ttl`` is passed through to Redis on writes when set; eviction is
    otherwise left entirely to the cache store.
    """

    def __init__(
        self,
        client: Redis,
        ttl: int | None = None,
        timeout: float | None = None,
    ):
        self.client = client
        self.ttl = ttl
        self.timeout = timeout if timeout is not None else settings.cache_timeout

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Run one Redis call under the cache timeout.

        Raises:
            CacheUnavailableError: On timeout or any Redis error.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            get_metrics().cache_errors_total.labels(operation=operation).inc()
            raise CacheUnavailableError(f"cache {operation} timed out") from e
        except (RedisError, OSError) as e:
            get_metrics().cache_errors_total.labels(operation=operation).inc()
            raise CacheUnavailableError(f"cache {operation} failed: {e}") from e

    async def get(self, key: str) -> CacheResult:
        try:
            value = await self._call("get", self.client.get(key))
        except CacheUnavailableError as e:
            logger.warning(f"Cache get failed for {key}: {e.text}")
            return CacheResult(key, CacheStatus.ERROR, error=e.text)
        if value is None:
            return CacheResult(key, CacheStatus.MISS)
        return CacheResult(key, CacheStatus.HIT, value=cast(bytes, value))

    async def set(self, key: str, value: bytes) -> CacheResult:
        try:
            await self._call("set", self.client.set(key, value, ex=self.ttl))
        except CacheUnavailableError as e:
            logger.warning(f"Cache set failed for {key}: {e.text}")
            return CacheResult(key, CacheStatus.ERROR, error=e.text)
        return CacheResult(key, CacheStatus.STORED)

    async def delete(self, key: str) -> CacheResult:
        try:
            removed = await self._call("delete", self.client.delete(key))
        except CacheUnavailableError as e:
            return CacheResult(key, CacheStatus.ERROR, error=e.text)
        return CacheResult(key, CacheStatus.DELETED if removed else CacheStatus.ABSENT)

    async def delete_many(self, keys: Sequence[str]) -> list[CacheResult]:
        """Delete a batch of keys in one pipeline.

        Each key gets its own DEL so the per-key outcome (deleted or
        absent) is preserved. A pipeline failure marks the whole batch as
        failed.
        """
        if not keys:
            return []

        async def _execute() -> list[Any]:
            async with self.client.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.delete(key)
                return cast(list[Any], await pipe.execute(raise_on_error=False))

        try:
            replies = await self._call("delete", _execute())
        except CacheUnavailableError as e:
            return [CacheResult(key, CacheStatus.ERROR, error=e.text) for key in keys]

        results = []
        for key, reply in zip(keys, replies):
            if isinstance(reply, Exception):
                results.append(CacheResult(key, CacheStatus.ERROR, error=str(reply)))
            elif reply:
                results.append(CacheResult(key, CacheStatus.DELETED))
            else:
                results.append(CacheResult(key, CacheStatus.ABSENT))
        return results

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await self._call("ping", cast(Awaitable[bool], self.client.ping()))
            return True
        except CacheUnavailableError:
            return False
