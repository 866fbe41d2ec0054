"""Cache key schema for restocache.

Key formats (every free-text component is Base64URL encoded):

    resto:restaurant:{name}
    resto:region:{region}:limit:{limit}
    resto:region:{region}:cuisine:{cuisine}:limit:{limit}
    resto:cuisine:{cuisine}:min:{min_rating}:limit:{limit}

Query-result entries have no link back to the restaurants they contain,
so a mutation recomputes every key that could hold the restaurant from
its region and cuisine. The parameter domains are fixed: limits 10..100
and minimum ratings 0.0..5.0 in steps of 0.1.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Final

from restocache.core.ids import encode_component

MIN_LIMIT: Final[int] = 10
MAX_LIMIT: Final[int] = 100
LIMIT_DOMAIN: Final[tuple[int, ...]] = tuple(range(MIN_LIMIT, MAX_LIMIT + 1))

_RATING_STEP: Final[Decimal] = Decimal("0.1")
MIN_RATING_DOMAIN: Final[tuple[str, ...]] = tuple(
    str(Decimal(tenths) * _RATING_STEP) for tenths in range(0, 51)
)


def min_rating_bucket(value: float | str | Decimal) -> Decimal:
    """Round a minimum rating down to one decimal place.

    A cuisine entry cached for bucket ``b`` holds the top rows with
    ``rating >= b``. Any threshold in ``[b, b + 0.1)`` selects a prefix of
    those rows, so the entry answers every such threshold exactly.
    """
    return Decimal(str(value)).quantize(_RATING_STEP, rounding=ROUND_FLOOR)


def format_min_rating(value: float | str | Decimal) -> str:
    """Fixed one-decimal representation shared by lookups and derivation."""
    return str(min_rating_bucket(value))


class CacheKeys:
    """Cache key generator following a consistent naming convention."""

    PREFIX = "resto"

    @classmethod
    def restaurant(cls, name: str) -> str:
        """Direct key for one restaurant's projection."""
        return f"{cls.PREFIX}:restaurant:{encode_component(name)}"

    @classmethod
    def by_region(cls, region: str, limit: int) -> str:
        return f"{cls.PREFIX}:region:{encode_component(region)}:limit:{limit}"

    @classmethod
    def by_region_and_cuisine(cls, region: str, cuisine: str, limit: int) -> str:
        return (
            f"{cls.PREFIX}:region:{encode_component(region)}"
            f":cuisine:{encode_component(cuisine)}:limit:{limit}"
        )

    @classmethod
    def by_cuisine(cls, cuisine: str, min_rating: float | str | Decimal, limit: int) -> str:
        return (
            f"{cls.PREFIX}:cuisine:{encode_component(cuisine)}"
            f":min:{format_min_rating(min_rating)}:limit:{limit}"
        )

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Split a key into its family and raw components.

        Returns None if the key doesn't carry the expected prefix.
        """
        parts = key.split(":")
        if len(parts) < 3 or parts[0] != cls.PREFIX:
            return None
        components = dict(zip(parts[1::2], parts[2::2]))
        if "restaurant" in components:
            family = "restaurant"
        elif "min" in components:
            family = "cuisine"
        elif "cuisine" in components:
            family = "region_cuisine"
        else:
            family = "region"
        return {"family": family, **components}


def derive_query_keys(region: str, cuisine: str) -> tuple[str, ...]:
    """Every query-result key whose result set could include a restaurant.

    Order: region-only keys, region+cuisine keys, then cuisine keys grouped
    by minimum rating. 91 + 91 + 91 * 51 = 4823 keys.
    """
    region_keys = [CacheKeys.by_region(region, limit) for limit in LIMIT_DOMAIN]
    region_cuisine_keys = [
        CacheKeys.by_region_and_cuisine(region, cuisine, limit) for limit in LIMIT_DOMAIN
    ]
    cuisine_keys = [
        CacheKeys.by_cuisine(cuisine, min_rating, limit)
        for min_rating in MIN_RATING_DOMAIN
        for limit in LIMIT_DOMAIN
    ]
    return tuple(region_keys + region_cuisine_keys + cuisine_keys)


def derive_invalidation_keys(
    name: str | None, region: str, cuisine: str
) -> tuple[str, ...]:
    """Query-result keys for ``(region, cuisine)`` plus the direct key.

    The direct key comes first when ``name`` is given. Callers that are
    about to overwrite the direct entry pass ``name=None``.
    """
    query_keys = derive_query_keys(region, cuisine)
    if name is None:
        return query_keys
    return (CacheKeys.restaurant(name),) + query_keys
