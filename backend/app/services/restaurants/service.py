"""Restaurant list service.

Cache-aside wrapper over the Overpass client. Point queries are cached under
``restaurants-by-bucket`` using the 3-decimal location bucket, so nearby map
positions reuse one result set. Bounding-box queries are cached under
``restaurants-by-region``.
"""

import logging
from typing import Any, Optional

from app.models import Restaurant
from app.services.cache import (
    RESTAURANTS_BY_BUCKET,
    RESTAURANTS_BY_REGION,
    CacheService,
    NamespacedCache,
    cached_lookup,
)
from app.services.osm import OSMOverpassService
from app.utils.cache import bucket_key, region_key

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_M = 5000


def _encode(restaurants: list[Restaurant]) -> list[dict[str, Any]]:
    return [restaurant.model_dump(mode="json") for restaurant in restaurants]


def _decode(raw: list[dict[str, Any]]) -> list[Restaurant]:
    return [Restaurant.model_validate(item) for item in raw]


class RestaurantService:
    """Fetches restaurant lists, memoized in the shared cache."""

    def __init__(
        self,
        cache: NamespacedCache,
        osm: OSMOverpassService,
        store: Optional[CacheService] = None,
    ) -> None:
        self._cache = cache
        self._osm = osm
        self._store = store

    async def nearby(
        self, lat: float, lon: float, radius: float = DEFAULT_RADIUS_M
    ) -> list[Restaurant]:
        """Restaurants around a point, from the location-bucket cache when fresh.

        The fetch uses the caller's exact coordinates; only the cache slot is
        coarsened.

        Raises:
            ValueError: If the coordinates or radius are invalid.
            FetchError: If the geodata service could not be queried.
        """
        key = bucket_key(lat, lon, radius)
        return await cached_lookup(
            self._cache,
            RESTAURANTS_BY_BUCKET,
            key,
            lambda: self._osm.query_restaurants_near(lat, lon, radius),
            store=self._store,
            encode=_encode,
            decode=_decode,
        )

    async def in_region(
        self, south: float, west: float, north: float, east: float
    ) -> list[Restaurant]:
        """Restaurants inside a bounding box, from the region cache when fresh.

        Raises:
            ValueError: If the bounding box is invalid.
            FetchError: If the geodata service could not be queried.
        """
        key = region_key(south, west, north, east)
        return await cached_lookup(
            self._cache,
            RESTAURANTS_BY_REGION,
            key,
            lambda: self._osm.query_restaurants_in_bbox(south, west, north, east),
            store=self._store,
            encode=_encode,
            decode=_decode,
        )
