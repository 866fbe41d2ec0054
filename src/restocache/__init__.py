"""restocache: restaurant ratings behind a coherent Redis read-through cache."""

__version__ = "0.1.0"
