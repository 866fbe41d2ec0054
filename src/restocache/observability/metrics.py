"""Prometheus metrics for restocache.

Provides metrics collection and exposure:
- Cache metrics (hits, misses, errors per operation)
- Invalidation metrics (keys per outcome, sweep duration)
- Store metrics (operation latency)

Usage:
    from restocache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(lookup="restaurant").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

from restocache.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass

    def observe(self, amount: float) -> None:
        """No-op."""
        pass


_NOOP = NoOpMetric()


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # Cache metrics
    cache_hits_total: Any = _NOOP
    cache_misses_total: Any = _NOOP
    cache_errors_total: Any = _NOOP

    # Invalidation metrics
    invalidated_keys_total: Any = _NOOP
    invalidation_duration_seconds: Any = _NOOP

    # Store metrics
    store_operation_duration_seconds: Any = _NOOP

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.cache_hits_total = Counter(
            "resto_cache_hits_total",
            "Cache hits",
            ["lookup"],
        )

        self.cache_misses_total = Counter(
            "resto_cache_misses_total",
            "Cache misses",
            ["lookup"],
        )

        self.cache_errors_total = Counter(
            "resto_cache_errors_total",
            "Failed or timed-out cache operations",
            ["operation"],
        )

        self.invalidated_keys_total = Counter(
            "resto_invalidated_keys_total",
            "Keys processed by invalidation sweeps",
            ["outcome"],
        )

        self.invalidation_duration_seconds = Histogram(
            "resto_invalidation_duration_seconds",
            "Invalidation sweep duration in seconds",
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
        )

        self.store_operation_duration_seconds = Histogram(
            "resto_store_operation_duration_seconds",
            "Authoritative store operation latency in seconds",
            ["operation"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
