"""MealMap Services.

Service layer components:
- Cache: in-memory namespaced TTL cache with an optional Redis second tier
- Nutrition: chain name -> nutrition table lookups
- OSM: OpenStreetMap Overpass API for restaurant queries
- Restaurants: cached nearby / region restaurant lists
- Search: name and cuisine search over nearby restaurants
"""

from .cache import (
    CacheNamespace,
    CacheService,
    NamespacedCache,
    RedisCacheService,
    UnknownNamespaceError,
)
from .nutrition import NutritionNotFoundError, NutritionService
from .osm import FetchError, OSMOverpassService
from .restaurants import RestaurantService
from .search import SearchService

__all__ = [
    # Cache
    "CacheNamespace",
    "CacheService",
    "NamespacedCache",
    "RedisCacheService",
    "UnknownNamespaceError",
    # Nutrition
    "NutritionNotFoundError",
    "NutritionService",
    # OSM
    "FetchError",
    "OSMOverpassService",
    # Restaurants
    "RestaurantService",
    # Search
    "SearchService",
]
