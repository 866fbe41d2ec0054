"""FastAPI dependencies."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from restocache.services.restaurants import RestaurantService


async def get_service(request: Request) -> RestaurantService:
    """Restaurant service attached to the application at startup."""
    return cast(RestaurantService, request.app.state.service)
