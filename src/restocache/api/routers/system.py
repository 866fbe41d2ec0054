"""System endpoints: configuration summary, health and metrics.

- GET /             - Effective configuration (no secrets)
- GET /health       - Store and cache health
- GET /health/live  - Liveness probe
- GET /metrics      - Prometheus exposition

The store is required for the service to work, the cache is not: an
unreachable cache reports ``degraded`` with status 200.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from starlette.responses import Response

from restocache.config import settings
from restocache.observability.metrics import get_metrics

router = APIRouter(tags=["system"])

HealthCheck = Callable[[], Awaitable[bool]]

HEALTH_CHECK_TIMEOUT = 5.0


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    healthy: bool
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "status": "up" if self.healthy else "down",
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def _check(name: str, check: HealthCheck) -> ComponentHealth:
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(check(), timeout=HEALTH_CHECK_TIMEOUT)
        message = None if healthy else f"{name} check failed"
    except asyncio.TimeoutError:
        healthy, message = False, f"{name} check timed out"
    latency = (time.monotonic() - start) * 1000
    return ComponentHealth(name=name, healthy=healthy, latency_ms=latency, message=message)


@router.get("/")
async def configuration() -> dict[str, Any]:
    """Effective configuration (no secrets)."""
    return {
        "app_name": settings.app_name,
        "env": settings.env,
        "table_name": settings.table_name,
        "use_cache": settings.use_cache,
        "invalidation_mode": settings.invalidation_mode,
        "rating_compare_and_swap": settings.rating_compare_and_swap,
    }


@router.get("/health")
async def health(request: Request) -> ORJSONResponse:
    """Full health report.

    Returns 200 when the store is reachable, 503 otherwise.
    """
    checks: dict[str, HealthCheck] = request.app.state.health_checks
    results = await asyncio.gather(*(_check(name, check) for name, check in checks.items()))
    by_name = {result.name: result for result in results}

    store = by_name.get("store")
    if store is not None and not store.healthy:
        status = HealthStatus.UNHEALTHY
    elif all(result.healthy for result in results):
        status = HealthStatus.HEALTHY
    else:
        status = HealthStatus.DEGRADED

    return ORJSONResponse(
        content={
            "status": status.value,
            "checks": {result.name: result.to_dict() for result in results},
        },
        status_code=503 if status is HealthStatus.UNHEALTHY else 200,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/metrics", response_class=Response)
async def prometheus_metrics() -> Response:
    """Return Prometheus metrics in exposition format."""
    return Response(
        content=get_metrics().generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
