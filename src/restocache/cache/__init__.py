"""Cache layer for restocache.

Provides the Redis read-through cache and its coherence machinery:
- Deterministic keys for direct and list-query entries
- Read-through population on miss
- Bounded-concurrency invalidation sweeps after every mutation
"""

from restocache.cache.invalidation import (
    InvalidationMode,
    InvalidationOrchestrator,
    InvalidationReport,
)
from restocache.cache.keys import (
    CacheKeys,
    derive_invalidation_keys,
    derive_query_keys,
    format_min_rating,
)
from restocache.cache.read_through import ListQuery, ReadThroughCoordinator
from restocache.cache.redis import RedisCache, close_redis, get_redis

__all__ = [
    # Keys
    "CacheKeys",
    "derive_invalidation_keys",
    "derive_query_keys",
    "format_min_rating",
    # Gateway
    "RedisCache",
    "get_redis",
    "close_redis",
    # Coherence
    "InvalidationMode",
    "InvalidationOrchestrator",
    "InvalidationReport",
    "ListQuery",
    "ReadThroughCoordinator",
]
