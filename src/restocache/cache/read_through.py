"""Read-through access to restaurants and list queries.

Lookups go to the cache first. On a miss (or any cache failure) the
equivalent store read runs, the cache is populated with the result and
the store's result is returned. Population is best-effort: its failure is
logged and never changes the response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, cast

from restocache.cache.keys import CacheKeys, min_rating_bucket
from restocache.core.errors import InvalidArgumentError
from restocache.core.gateways import (
    CacheGateway,
    CacheResult,
    CacheStatus,
    StoreGateway,
    StoreIndex,
)
from restocache.core.model import (
    Restaurant,
    dump_entries,
    dump_entry,
    load_entries,
    load_entry,
)
from restocache.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


_REQUIRED_FIELDS: dict[StoreIndex, tuple[str, ...]] = {
    StoreIndex.CUISINE: ("cuisine",),
    StoreIndex.REGION: ("region",),
    StoreIndex.REGION_CUISINE: ("region", "cuisine"),
}


@dataclass(frozen=True)
class ListQuery:
    """One list query over a store index.

    ``limit`` is the number of rows cached for this parameter tuple and
    must lie in the invalidation domain of ``restocache.cache.keys``.
    ``min_rating`` is the caller's exact threshold; the cache key and the
    store query use its one-decimal bucket.
    """

    index: StoreIndex
    limit: int
    region: str | None = None
    cuisine: str | None = None
    min_rating: Decimal | None = None

    def __post_init__(self) -> None:
        for name in _REQUIRED_FIELDS[self.index]:
            if not getattr(self, name):
                raise InvalidArgumentError(f"Missing {name} for {self.index.value} query")
        if self.index is StoreIndex.REGION and self.cuisine is not None:
            raise InvalidArgumentError("Region query does not take a cuisine")
        if self.index is not StoreIndex.CUISINE and self.min_rating is not None:
            raise InvalidArgumentError("Only cuisine queries take a minimum rating")

    @property
    def bucket(self) -> Decimal | None:
        if self.index is not StoreIndex.CUISINE:
            return None
        return min_rating_bucket(self.min_rating or 0)

    @property
    def cache_key(self) -> str:
        if self.index is StoreIndex.CUISINE:
            return CacheKeys.by_cuisine(cast(str, self.cuisine), self.min_rating or 0, self.limit)
        if self.index is StoreIndex.REGION:
            return CacheKeys.by_region(cast(str, self.region), self.limit)
        return CacheKeys.by_region_and_cuisine(
            cast(str, self.region), cast(str, self.cuisine), self.limit
        )

    @property
    def predicate(self) -> dict[str, str]:
        predicate = {}
        if self.region is not None:
            predicate["region"] = self.region
        if self.cuisine is not None:
            predicate["cuisine"] = self.cuisine
        return predicate


class ReadThroughCoordinator:
    """Cache-or-store reads with populate-on-miss.

    Passing ``cache=None`` disables caching; every read goes to the store.
    """

    def __init__(self, store: StoreGateway, cache: CacheGateway | None) -> None:
        self.store = store
        self.cache = cache

    # -------------------------------------------------------------------------
    # Direct lookups
    # -------------------------------------------------------------------------

    async def get_restaurant(self, name: str) -> dict[str, Any] | None:
        """Projection of one restaurant, or None if the store has none."""
        key = CacheKeys.restaurant(name)
        cached = await self._lookup(key, "restaurant")
        if cached is not None:
            try:
                return load_entry(cached)
            except (ValueError, TypeError, KeyError) as e:
                logger.warning(f"Discarding unreadable cache entry {key}: {e}")

        restaurant = await self.store.get(name)
        if restaurant is None:
            return None

        projection = restaurant.projection()
        await self._populate(key, dump_entry(projection))
        return projection

    async def prime(self, restaurant: Restaurant) -> CacheResult | None:
        """Write the direct entry for a restaurant whose new state is known."""
        if self.cache is None:
            return None
        return await self._populate(
            CacheKeys.restaurant(restaurant.name), dump_entry(restaurant.projection())
        )

    # -------------------------------------------------------------------------
    # List queries
    # -------------------------------------------------------------------------

    async def list_restaurants(self, query: ListQuery) -> list[dict[str, Any]]:
        """Projections ordered by descending rating, at most ``query.limit``.

        The cached entry holds the rows for the query's rating bucket; the
        exact ``min_rating`` is applied to it on every read.
        """
        key = query.cache_key
        projections: list[dict[str, Any]] | None = None
        cached = await self._lookup(key, query.index.value)
        if cached is not None:
            try:
                projections = load_entries(cached)
            except (ValueError, TypeError, KeyError) as e:
                logger.warning(f"Discarding unreadable cache entry {key}: {e}")

        if projections is None:
            floor = float(query.bucket) if query.bucket is not None else None
            rows = await self.store.query_by_index(
                query.index, query.predicate, query.limit, min_rating=floor
            )
            if floor is not None:
                rows = [row for row in rows if row.rating >= floor]
            rows.sort(key=lambda row: row.rating, reverse=True)
            projections = [row.projection() for row in rows[: query.limit]]
            await self._populate(key, dump_entries(projections))

        if query.min_rating is not None:
            threshold = float(query.min_rating)
            projections = [p for p in projections if p["rating"] >= threshold]
        return projections

    # -------------------------------------------------------------------------
    # Cache access
    # -------------------------------------------------------------------------

    async def _lookup(self, key: str, lookup: str) -> bytes | None:
        if self.cache is None:
            return None
        result = await self.cache.get(key)
        metrics = get_metrics()
        if result.status is CacheStatus.HIT:
            metrics.cache_hits_total.labels(lookup=lookup).inc()
            return result.value
        metrics.cache_misses_total.labels(lookup=lookup).inc()
        if result.status is CacheStatus.ERROR:
            logger.info(f"Cache unavailable for {key}, reading from store")
        return None

    async def _populate(self, key: str, value: bytes) -> CacheResult | None:
        if self.cache is None:
            return None
        result = await self.cache.set(key, value)
        if not result.ok:
            logger.warning(f"Cache population failed for {key}: {result.error}")
        return result
