"""Restaurant domain model and its cache projection.

The authoritative record carries ``rating_count``; the projection handed
to callers and stored in the cache does not. In the cache the rating is
kept as a string, so values read back from the cache are reparsed to
``float`` before they reach a caller.
"""

from __future__ import annotations

from typing import Any

import orjson
from pydantic import BaseModel, Field

MIN_RATING = 0.0
MAX_RATING = 5.0


class Restaurant(BaseModel):
    """Authoritative restaurant record."""

    model_config = {"extra": "forbid", "validate_assignment": True}

    name: str = Field(min_length=1)
    cuisine: str = Field(min_length=1)
    region: str = Field(min_length=1)
    rating: float = Field(default=0.0, ge=MIN_RATING, le=MAX_RATING)
    rating_count: int = Field(default=0, ge=0)

    def projection(self) -> dict[str, Any]:
        """Caller-facing view of the record (no rating_count)."""
        return {
            "name": self.name,
            "cuisine": self.cuisine,
            "region": self.region,
            "rating": self.rating,
        }


def _to_cached(projection: dict[str, Any]) -> dict[str, Any]:
    cached = dict(projection)
    cached["rating"] = str(float(projection["rating"]))
    return cached


def _from_cached(cached: dict[str, Any]) -> dict[str, Any]:
    projection = dict(cached)
    projection["rating"] = float(cached.get("rating") or 0)
    return projection


def dump_entry(projection: dict[str, Any]) -> bytes:
    """Serialize a direct cache entry."""
    return orjson.dumps(_to_cached(projection))


def load_entry(data: bytes | str) -> dict[str, Any]:
    """Deserialize a direct cache entry, reparsing numeric fields."""
    return _from_cached(orjson.loads(data))


def dump_entries(projections: list[dict[str, Any]]) -> bytes:
    """Serialize a query-result cache entry."""
    return orjson.dumps([_to_cached(p) for p in projections])


def load_entries(data: bytes | str) -> list[dict[str, Any]]:
    """Deserialize a query-result cache entry, reparsing numeric fields."""
    return [_from_cached(item) for item in orjson.loads(data)]
