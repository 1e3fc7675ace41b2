"""Restaurant service module."""

from .service import DEFAULT_RADIUS_M, RestaurantService

__all__ = [
    "DEFAULT_RADIUS_M",
    "RestaurantService",
]
