"""Error taxonomy for restaurant operations.

Every produced operation either returns its result or raises one of the
errors below. The HTTP layer maps them to status codes in
``restocache.api.errors``.

``CacheUnavailableError`` never escapes the cache package: the Redis
gateway converts it to a ``CacheResult`` with ``ERROR`` status so that a
cache outage degrades to a cache miss.
"""

from __future__ import annotations


class RestoError(Exception):
    """Base class for restocache errors."""

    code = "Error"

    def __init__(self, text: str):
        self.text = text
        super().__init__(text)


class NotFoundError(RestoError):
    """Restaurant absent for a keyed operation."""

    code = "NotFound"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Restaurant '{name}' not found")


class AlreadyExistsError(RestoError):
    """Create on an identity that is already present."""

    code = "AlreadyExists"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Restaurant '{name}' already exists")


class InvalidArgumentError(RestoError):
    """Missing required field or out-of-range parameter."""

    code = "InvalidArgument"


class StoreUnavailableError(RestoError):
    """The authoritative store call failed or timed out."""

    code = "StoreUnavailable"


class CacheUnavailableError(RestoError):
    """The cache store call failed or timed out."""

    code = "CacheUnavailable"
