"""Restaurant operations exposed to the HTTP layer."""

from restocache.services.rating import RatingAggregator, running_average
from restocache.services.restaurants import (
    RestaurantService,
    normalize_limit,
    normalize_min_rating,
)

__all__ = [
    "RatingAggregator",
    "RestaurantService",
    "normalize_limit",
    "normalize_min_rating",
    "running_average",
]
