"""Global pytest configuration and fixtures.

Provides in-memory stand-ins for the store and cache gateways so the
coherence logic can be exercised without PostgreSQL or Redis.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import pytest

from restocache.cache.invalidation import InvalidationOrchestrator
from restocache.core.errors import AlreadyExistsError, StoreUnavailableError
from restocache.core.gateways import CacheResult, CacheStatus, StoreIndex
from restocache.core.model import Restaurant
from restocache.services.restaurants import RestaurantService


class InMemoryStore:
    """Store gateway over a dict, with call counting and failure injection."""

    def __init__(self) -> None:
        self.records: dict[str, Restaurant] = {}
        self.fail = False
        self.calls: dict[str, int] = {}
        self.queries: list[dict[str, Any]] = []

    def _enter(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        if self.fail:
            raise StoreUnavailableError(f"store {operation} failed")

    async def get(self, name: str) -> Restaurant | None:
        self._enter("get")
        record = self.records.get(name)
        return record.model_copy() if record is not None else None

    async def put(self, restaurant: Restaurant) -> None:
        self._enter("put")
        if restaurant.name in self.records:
            raise AlreadyExistsError(restaurant.name)
        self.records[restaurant.name] = restaurant.model_copy()

    async def update(
        self,
        name: str,
        attrs: dict[str, Any],
        expected_rating_count: int | None = None,
    ) -> bool:
        self._enter("update")
        record = self.records.get(name)
        if record is None:
            return False
        if expected_rating_count is not None and record.rating_count != expected_rating_count:
            return False
        self.records[name] = record.model_copy(update=attrs)
        return True

    async def delete(self, name: str) -> bool:
        self._enter("delete")
        return self.records.pop(name, None) is not None

    async def query_by_index(
        self,
        index: StoreIndex,
        predicate: dict[str, str],
        limit: int,
        min_rating: float | None = None,
    ) -> list[Restaurant]:
        self._enter("query")
        self.queries.append(
            {"index": index, "predicate": dict(predicate), "limit": limit, "min_rating": min_rating}
        )
        rows = [
            record
            for record in self.records.values()
            if all(getattr(record, field) == value for field, value in predicate.items())
        ]
        rows.sort(key=lambda record: (-record.rating, record.name))
        return [row.model_copy() for row in rows[:limit]]


class InMemoryCache:
    """Cache gateway over a dict.

    ``fail`` turns every call into an ERROR result. ``delay`` makes each
    batch delete sleep, and ``peak_in_flight`` records the highest number
    of concurrent batch deletes observed.
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.fail = False
        self.delay = 0.0
        self.in_flight = 0
        self.peak_in_flight = 0
        self.batch_sizes: list[int] = []
        self.gets = 0
        self.sets = 0

    def _error(self, key: str) -> CacheResult:
        return CacheResult(key, CacheStatus.ERROR, error="cache unreachable")

    async def get(self, key: str) -> CacheResult:
        self.gets += 1
        if self.fail:
            return self._error(key)
        if key not in self.data:
            return CacheResult(key, CacheStatus.MISS)
        return CacheResult(key, CacheStatus.HIT, value=self.data[key])

    async def set(self, key: str, value: bytes) -> CacheResult:
        self.sets += 1
        if self.fail:
            return self._error(key)
        self.data[key] = value
        return CacheResult(key, CacheStatus.STORED)

    async def delete(self, key: str) -> CacheResult:
        if self.fail:
            return self._error(key)
        if self.data.pop(key, None) is None:
            return CacheResult(key, CacheStatus.ABSENT)
        return CacheResult(key, CacheStatus.DELETED)

    async def delete_many(self, keys: Sequence[str]) -> list[CacheResult]:
        self.batch_sizes.append(len(keys))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return [await self.delete(key) for key in keys]
        finally:
            self.in_flight -= 1


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def orchestrator(cache: InMemoryCache) -> InvalidationOrchestrator:
    return InvalidationOrchestrator(
        cache, batch_size=500, max_in_flight=4, mode="sync", wait_timeout=10.0
    )


@pytest.fixture
def service(
    store: InMemoryStore,
    cache: InMemoryCache,
    orchestrator: InvalidationOrchestrator,
) -> RestaurantService:
    return RestaurantService(store, cache, orchestrator=orchestrator)
