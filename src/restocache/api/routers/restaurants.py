"""Restaurant API router.

Endpoints:
- POST   /restaurants                                    - Create restaurant
- GET    /restaurants/{name}                             - Get restaurant
- DELETE /restaurants/{name}                             - Delete restaurant
- POST   /restaurants/rating                             - Submit a rating
- GET    /restaurants/cuisine/{cuisine}                  - Top rated by cuisine
- GET    /restaurants/region/{region}                    - Top rated by region
- GET    /restaurants/region/{region}/cuisine/{cuisine}  - Top rated by both

List endpoints accept ``limit`` (clamped to 1..100, default 10); the
cuisine endpoint also accepts ``minRating`` (0..5, default 0).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from restocache.api.deps import get_service
from restocache.services.restaurants import RestaurantService

router = APIRouter(prefix="/restaurants", tags=["Restaurants"])


class RestaurantCreate(BaseModel):
    """Create request body. Missing fields are reported as 400."""

    name: str | None = None
    cuisine: str | None = None
    region: str | None = None
    rating: float | None = None


class RatingSubmission(BaseModel):
    """Rating request body."""

    name: str | None = None
    rating: float | None = None


@router.post("")
async def post_restaurant(
    body: RestaurantCreate,
    service: RestaurantService = Depends(get_service),
) -> dict[str, Any]:
    """Create a new restaurant. Names are unique."""
    await service.create_restaurant(body.name, body.cuisine, body.region, body.rating)
    return {"success": True}


@router.post("/rating")
async def post_rating(
    body: RatingSubmission,
    service: RestaurantService = Depends(get_service),
) -> dict[str, Any]:
    """Add a rating and recompute the restaurant's average."""
    await service.submit_rating(body.name, body.rating)
    return {"success": True}


@router.get("/cuisine/{cuisine}")
async def get_by_cuisine(
    cuisine: str,
    limit: str | None = Query(None),
    min_rating: str | None = Query(None, alias="minRating"),
    service: RestaurantService = Depends(get_service),
) -> list[dict[str, Any]]:
    return await service.list_by_cuisine(cuisine, limit, min_rating)


@router.get("/region/{region}")
async def get_by_region(
    region: str,
    limit: str | None = Query(None),
    service: RestaurantService = Depends(get_service),
) -> list[dict[str, Any]]:
    return await service.list_by_region(region, limit)


@router.get("/region/{region}/cuisine/{cuisine}")
async def get_by_region_and_cuisine(
    region: str,
    cuisine: str,
    limit: str | None = Query(None),
    service: RestaurantService = Depends(get_service),
) -> list[dict[str, Any]]:
    return await service.list_by_region_and_cuisine(region, cuisine, limit)


@router.get("/{name}")
async def get_restaurant(
    name: str,
    service: RestaurantService = Depends(get_service),
) -> dict[str, Any]:
    return await service.get_restaurant(name)


@router.delete("/{name}")
async def delete_restaurant(
    name: str,
    service: RestaurantService = Depends(get_service),
) -> dict[str, Any]:
    await service.delete_restaurant(name)
    return {"success": True}
