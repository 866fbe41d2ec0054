"""FastAPI application factory for restocache.

Creates the application with:
- Restaurant routers
- Health, configuration and Prometheus endpoints
- Lifecycle management for the database, Redis and pending invalidation sweeps
- Consistent error responses for the domain error taxonomy
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from restocache.api.errors import (
    generic_exception_handler,
    resto_exception_handler,
    validation_exception_handler,
)
from restocache.api.middleware import RequestIdMiddleware
from restocache.api.routers import restaurants, system
from restocache.api.routers.system import HealthCheck
from restocache.cache.redis import RedisCache, close_redis, get_redis
from restocache.config import settings
from restocache.core.errors import RestoError
from restocache.observability import configure_logging, get_metrics
from restocache.persistence.db import close_db, init_db
from restocache.persistence.db import health_check as db_health_check
from restocache.persistence.repositories import RestaurantRepository
from restocache.services.restaurants import RestaurantService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup (unless a service was injected):
    - Configure structured logging
    - Create the restaurant table if missing
    - Connect Redis when the cache is enabled
    - Build the restaurant service

    On shutdown:
    - Wait briefly for background invalidation sweeps
    - Close Redis and database connections
    """
    configure_logging(
        json_format=settings.env != "dev",
        level=settings.log_level,
    )
    get_metrics()

    owns_service = app.state.service is None
    if owns_service:
        logger.info(f"Starting {settings.app_name} ({settings.env})")
        await init_db()
        cache: RedisCache | None = None
        if settings.use_cache:
            cache = RedisCache(await get_redis(), ttl=settings.cache_ttl)
        else:
            logger.info("Cache disabled, all reads go to the store")

        app.state.service = RestaurantService(RestaurantRepository(), cache)
        checks: dict[str, HealthCheck] = {"store": db_health_check}
        if cache is not None:
            checks["cache"] = cache.health_check
        app.state.health_checks = checks
        logger.info("Startup complete")

    yield

    service: RestaurantService = app.state.service
    if service.orchestrator is not None:
        await service.orchestrator.drain(timeout=settings.invalidation_wait_timeout)

    if owns_service:
        await close_redis()
        await close_db()
        logger.info("Shutdown complete")


def create_app(
    service: RestaurantService | None = None,
    health_checks: dict[str, HealthCheck] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Pre-built service (tests inject one backed by fakes).
            When None the lifespan builds one from settings.
        health_checks: Named async health checks for ``/health``.
    """
    app = FastAPI(
        title="restocache",
        description="Restaurant ratings with a coherent Redis read-through cache",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.health_checks = health_checks or {}

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(RestoError, cast(ExceptionHandler, resto_exception_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, validation_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(system.router)
    app.include_router(restaurants.router)

    return app
