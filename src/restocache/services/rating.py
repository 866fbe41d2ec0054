"""Running-average rating updates.

A submission reads the current ``(rating, rating_count)``, computes the
new mean and writes both back. By default this read-modify-write is not
guarded: two concurrent submissions for the same restaurant can both read
the same count, and the later write silently drops the other's vote.

With ``compare_and_swap`` enabled the write is conditional on the count
that was read, and the whole read-compute-write is retried on conflict.
"""

from __future__ import annotations

import logging
import math

from restocache.cache.invalidation import InvalidationOrchestrator
from restocache.cache.keys import derive_query_keys
from restocache.cache.read_through import ReadThroughCoordinator
from restocache.config import settings
from restocache.core.errors import InvalidArgumentError, NotFoundError, StoreUnavailableError
from restocache.core.gateways import StoreGateway
from restocache.core.model import MAX_RATING, MIN_RATING, Restaurant

logger = logging.getLogger(__name__)


def running_average(rating: float, rating_count: int, value: float) -> float:
    """Mean after adding ``value`` to ``rating_count`` ratings averaging ``rating``."""
    return (rating * rating_count + value) / (rating_count + 1)


class RatingAggregator:
    """Applies rating submissions to the store and refreshes the cache."""

    def __init__(
        self,
        store: StoreGateway,
        read_through: ReadThroughCoordinator,
        orchestrator: InvalidationOrchestrator | None,
        *,
        compare_and_swap: bool | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.store = store
        self.read_through = read_through
        self.orchestrator = orchestrator
        self.compare_and_swap = (
            compare_and_swap if compare_and_swap is not None else settings.rating_compare_and_swap
        )
        self.max_retries = max_retries if max_retries is not None else settings.rating_max_retries

    async def submit(self, name: str, value: float) -> Restaurant:
        """Add one rating to a restaurant and return its new state.

        Raises:
            InvalidArgumentError: If ``value`` is not a number in [0, 5].
            NotFoundError: If the restaurant does not exist.
            StoreUnavailableError: On store failure, or when conditional
                writes keep conflicting past ``max_retries``.
        """
        value = _validate_rating(value)
        attempts = self.max_retries + 1 if self.compare_and_swap else 1

        for attempt in range(1, attempts + 1):
            current = await self.store.get(name)
            if current is None:
                raise NotFoundError(name)

            new_rating = running_average(current.rating, current.rating_count, value)
            new_count = current.rating_count + 1
            written = await self.store.update(
                name,
                {"rating": new_rating, "rating_count": new_count},
                expected_rating_count=current.rating_count if self.compare_and_swap else None,
            )
            if written:
                break
            if not self.compare_and_swap:
                # Deleted between the read and the write
                raise NotFoundError(name)
            logger.info(f"Rating update for '{name}' conflicted (attempt {attempt}/{attempts})")
        else:
            raise StoreUnavailableError(
                f"Rating update for '{name}' kept conflicting after {attempts} attempts"
            )

        updated = current.model_copy(update={"rating": new_rating, "rating_count": new_count})

        # The direct entry is overwritten rather than swept so readers see the new value
        await self.read_through.prime(updated)
        if self.orchestrator is not None:
            await self.orchestrator.invalidate(derive_query_keys(updated.region, updated.cuisine))
        return updated


def _validate_rating(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError("Rating must be a number")
    rating = float(value)
    if not math.isfinite(rating) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidArgumentError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return rating
