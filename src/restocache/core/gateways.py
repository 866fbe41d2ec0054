"""Capabilities consumed from the two backing services.

The store gateway raises ``StoreUnavailableError`` on failure. The cache
gateway never raises: each call reports a ``CacheResult`` whose status
distinguishes a hit, a miss, an absent key and a failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Sequence

from restocache.core.model import Restaurant


class StoreIndex(str, Enum):
    """Secondary indexes on the restaurant table."""

    CUISINE = "cuisine"
    REGION = "region"
    REGION_CUISINE = "region_cuisine"


class CacheStatus(str, Enum):
    """Outcome of a single cache operation."""

    HIT = "hit"
    MISS = "miss"
    STORED = "stored"
    DELETED = "deleted"
    ABSENT = "absent"
    ERROR = "error"


@dataclass(frozen=True)
class CacheResult:
    """Per-key outcome of a cache call."""

    key: str
    status: CacheStatus
    value: bytes | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not CacheStatus.ERROR


class StoreGateway(Protocol):
    async def get(self, name: str) -> Restaurant | None: ...

    async def put(self, restaurant: Restaurant) -> None: ...

    async def update(
        self,
        name: str,
        attrs: dict[str, Any],
        expected_rating_count: int | None = None,
    ) -> bool: ...

    async def delete(self, name: str) -> bool: ...

    async def query_by_index(
        self,
        index: StoreIndex,
        predicate: dict[str, str],
        limit: int,
        min_rating: float | None = None,
    ) -> list[Restaurant]: ...


class CacheGateway(Protocol):
    async def get(self, key: str) -> CacheResult: ...

    async def set(self, key: str, value: bytes) -> CacheResult: ...

    async def delete(self, key: str) -> CacheResult: ...

    async def delete_many(self, keys: Sequence[str]) -> list[CacheResult]: ...
