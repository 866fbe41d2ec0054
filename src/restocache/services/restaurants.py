"""Restaurant operations with a coherent read-through cache.

Every mutation writes the store first. Only that write decides the
outcome: the invalidation sweep and the direct-entry refresh that follow
are best-effort and leave the cache stale (never the operation failed)
when Redis is unreachable.

List limits are clamped to [1, 100]. Cache entries are only ever stored
for limits inside the invalidation domain (10..100), so smaller limits
are served from the ``limit=10`` entry and truncated.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Any

from restocache.cache.invalidation import InvalidationOrchestrator
from restocache.cache.keys import (
    MIN_LIMIT,
    derive_invalidation_keys,
    derive_query_keys,
)
from restocache.cache.read_through import ListQuery, ReadThroughCoordinator
from restocache.core.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from restocache.core.gateways import CacheGateway, StoreGateway, StoreIndex
from restocache.core.model import MAX_RATING, MIN_RATING, Restaurant
from restocache.services.rating import RatingAggregator

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class RestaurantService:
    """Produced interface consumed by the HTTP layer.

    Pass ``cache=None`` to run without a cache (every read hits the store
    and mutations skip invalidation).
    """

    def __init__(
        self,
        store: StoreGateway,
        cache: CacheGateway | None,
        *,
        orchestrator: InvalidationOrchestrator | None = None,
        rating_aggregator: RatingAggregator | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.read_through = ReadThroughCoordinator(store, cache)
        if cache is not None and orchestrator is None:
            orchestrator = InvalidationOrchestrator(cache)
        self.orchestrator = orchestrator if cache is not None else None
        self.rating_aggregator = rating_aggregator or RatingAggregator(
            store, self.read_through, self.orchestrator
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_restaurant(
        self,
        name: str | None,
        cuisine: str | None,
        region: str | None,
        rating: float | None = None,
    ) -> Restaurant:
        """Create a restaurant with ``rating_count`` 0.

        Raises:
            InvalidArgumentError: Missing name, cuisine or region, or an
                initial rating outside [0, 5].
            AlreadyExistsError: A restaurant with this name exists.
        """
        if not name or not cuisine or not region:
            raise InvalidArgumentError("Missing required fields")
        initial = _validate_initial_rating(rating)

        if await self.store.get(name) is not None:
            raise AlreadyExistsError(name)

        restaurant = Restaurant(name=name, cuisine=cuisine, region=region, rating=initial)
        await self.store.put(restaurant)
        logger.info(f"Restaurant '{name}' created")

        if self.orchestrator is not None:
            await self.orchestrator.invalidate(derive_query_keys(region, cuisine))
        await self.read_through.prime(restaurant)
        return restaurant

    async def delete_restaurant(self, name: str) -> None:
        """Delete a restaurant and sweep every cache entry that could hold it.

        Raises:
            NotFoundError: If the restaurant does not exist.
        """
        existing = await self.store.get(name)
        if existing is None:
            raise NotFoundError(name)

        if not await self.store.delete(name):
            raise NotFoundError(name)
        logger.info(f"Restaurant '{name}' deleted")

        if self.orchestrator is not None:
            await self.orchestrator.invalidate(
                derive_invalidation_keys(name, existing.region, existing.cuisine)
            )

    async def submit_rating(self, name: str | None, rating: Any) -> dict[str, Any]:
        """Add a rating and return the restaurant's updated projection."""
        if not name or rating is None:
            raise InvalidArgumentError("Missing required fields")
        updated = await self.rating_aggregator.submit(name, rating)
        return updated.projection()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_restaurant(self, name: str) -> dict[str, Any]:
        projection = await self.read_through.get_restaurant(name)
        if projection is None:
            raise NotFoundError(name)
        return projection

    async def list_by_cuisine(
        self,
        cuisine: str,
        limit: Any = None,
        min_rating: Any = None,
    ) -> list[dict[str, Any]]:
        """Top-rated restaurants of a cuisine with ``rating >= min_rating``."""
        _require("cuisine", cuisine)
        size = normalize_limit(limit)
        query = ListQuery(
            index=StoreIndex.CUISINE,
            limit=max(size, MIN_LIMIT),
            cuisine=cuisine,
            min_rating=normalize_min_rating(min_rating),
        )
        return (await self.read_through.list_restaurants(query))[:size]

    async def list_by_region(self, region: str, limit: Any = None) -> list[dict[str, Any]]:
        """Top-rated restaurants of a region."""
        _require("region", region)
        size = normalize_limit(limit)
        query = ListQuery(index=StoreIndex.REGION, limit=max(size, MIN_LIMIT), region=region)
        return (await self.read_through.list_restaurants(query))[:size]

    async def list_by_region_and_cuisine(
        self, region: str, cuisine: str, limit: Any = None
    ) -> list[dict[str, Any]]:
        """Top-rated restaurants of a cuisine within a region."""
        _require("region", region)
        _require("cuisine", cuisine)
        size = normalize_limit(limit)
        query = ListQuery(
            index=StoreIndex.REGION_CUISINE,
            limit=max(size, MIN_LIMIT),
            region=region,
            cuisine=cuisine,
        )
        return (await self.read_through.list_restaurants(query))[:size]


def normalize_limit(limit: Any) -> int:
    """Parse a list limit, defaulting to 10 and clamping to [1, 100]."""
    if limit is None or limit == "":
        return DEFAULT_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid limit: {limit!r}") from e
    return min(max(value, 1), MAX_LIMIT)


def normalize_min_rating(min_rating: Any) -> Decimal:
    """Parse a minimum rating in [0, 5]. The exact value is kept."""
    if min_rating is None or min_rating == "":
        return Decimal("0.0")
    try:
        value = float(min_rating)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid minRating: {min_rating!r}") from e
    if not math.isfinite(value) or not MIN_RATING <= value <= MAX_RATING:
        raise InvalidArgumentError(f"minRating must be between {MIN_RATING} and {MAX_RATING}")
    return Decimal(str(value))


def _validate_initial_rating(rating: Any) -> float:
    if rating is None:
        return 0.0
    try:
        value = float(rating)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid rating: {rating!r}") from e
    if not math.isfinite(value) or not MIN_RATING <= value <= MAX_RATING:
        raise InvalidArgumentError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value


def _require(field: str, value: str | None) -> None:
    if not value:
        raise InvalidArgumentError(f"Missing {field}")
