"""Observability module for restocache.

Provides metrics and structured logging:
- Prometheus metrics for cache hits, misses and invalidation sweeps
- JSON structured logging with request IDs
"""

from restocache.observability.logging import (
    LogContext,
    configure_logging,
    operation_var,
    request_id_var,
)
from restocache.observability.metrics import get_metrics, metrics_registry

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "operation_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
]
