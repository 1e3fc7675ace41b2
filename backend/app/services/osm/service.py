"""OpenStreetMap Overpass API client for restaurant queries.

This is the geodata source for the restaurant lists. It only fetches and
parses: caching is the caller's job (see ``RestaurantService``).

Architecture:
1. Build an Overpass QL query for food amenities around a point or in a bbox
2. Try each configured Overpass mirror in order until one answers
3. Parse named nodes/ways into ``Restaurant`` models
"""

import logging
from collections.abc import Sequence

import httpx

from app.models import Restaurant
from app.services.nutrition.service import restaurant_id_for

logger = logging.getLogger(__name__)


# OSM amenity values treated as places to eat
FOOD_AMENITIES = ("restaurant", "fast_food", "cafe", "food_court")

DEFAULT_OVERPASS_URLS = (
    "https://overpass-api.de/api/interpreter",
    "https://maps.mail.ru/osm/tools/overpass/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
)


class FetchError(Exception):
    """Raised when the geodata service could not be queried."""


class OSMOverpassService:
    """OpenStreetMap Overpass API client for restaurant queries.

    A fresh ``httpx.AsyncClient`` is opened per query; ``transport`` can be
    supplied to route requests elsewhere (tests use ``httpx.MockTransport``).
    """

    HEADERS = {"User-Agent": "MealMap/1.0 (contact@mealmap.app)"}

    def __init__(
        self,
        overpass_urls: Sequence[str] = DEFAULT_OVERPASS_URLS,
        timeout: float = 30.0,
        limit: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not overpass_urls:
            raise ValueError("At least one Overpass URL is required")
        self._overpass_urls = tuple(overpass_urls)
        self._timeout = timeout
        self._limit = limit
        self._transport = transport

    def _build_around_query(self, lat: float, lon: float, radius: float) -> str:
        """Build Overpass QL query for food amenities within radius meters."""
        area = f"around:{int(radius)},{lat},{lon}"
        return self._build_query(area)

    def _build_bbox_query(
        self, south: float, west: float, north: float, east: float
    ) -> str:
        """Build Overpass QL query for food amenities inside a bounding box."""
        return self._build_query(f"{south},{west},{north},{east}")

    def _build_query(self, area: str) -> str:
        amenities = "|".join(FOOD_AMENITIES)
        return f"""
[out:json][timeout:25];
(
  node["amenity"~"^({amenities})$"]["name"]({area});
  way["amenity"~"^({amenities})$"]["name"]({area});
);
out center {self._limit};
"""

    async def query_restaurants_near(
        self, lat: float, lon: float, radius: float
    ) -> list[Restaurant]:
        """Query restaurants within ``radius`` meters of a point.

        Raises:
            ValueError: If the coordinates or radius are out of range.
            FetchError: If every Overpass mirror failed.
        """
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise ValueError(f"Invalid coordinates: {lat}, {lon}")
        if radius <= 0:
            raise ValueError("radius must be positive")
        query = self._build_around_query(lat, lon, radius)
        return await self._run_query(query)

    async def query_restaurants_in_bbox(
        self, south: float, west: float, north: float, east: float
    ) -> list[Restaurant]:
        """Query restaurants inside a bounding box.

        Raises:
            ValueError: If the bounding box is empty or out of range.
            FetchError: If every Overpass mirror failed.
        """
        if not (-90 <= south < north <= 90 and -180 <= west < east <= 180):
            raise ValueError(f"Invalid bounding box: {south},{west},{north},{east}")
        query = self._build_bbox_query(south, west, north, east)
        return await self._run_query(query)

    async def _run_query(self, query: str) -> list[Restaurant]:
        last_error: Exception | None = None
        async with httpx.AsyncClient(
            timeout=self._timeout, headers=self.HEADERS, transport=self._transport
        ) as client:
            for url in self._overpass_urls:
                try:
                    response = await client.post(url, data={"data": query})
                    response.raise_for_status()
                    data = response.json()
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning(f"[OVERPASS] {url} failed: {e}")
                    last_error = e
                    continue

                if not isinstance(data, dict):
                    logger.warning(f"[OVERPASS] {url} returned {type(data).__name__}, expected an object")
                    last_error = ValueError("unexpected Overpass payload")
                    continue

                restaurants = self.parse_elements(data.get("elements", []))
                logger.info(f"[OVERPASS] {len(restaurants)} restaurants from {url}")
                return restaurants

        logger.error(f"[OVERPASS] All {len(self._overpass_urls)} endpoints failed")
        raise FetchError(f"Overpass query failed: {last_error}")

    def parse_elements(self, elements: list[dict]) -> list[Restaurant]:
        """Convert Overpass elements into restaurants.

        Elements without a name or coordinates are skipped, as are
        duplicate OSM ids.
        """
        restaurants = []
        seen_ids = set()

        for element in elements:
            tags = element.get("tags", {})
            name = tags.get("name")
            if not name:
                continue

            # Ways carry their coordinates in "center"
            if element.get("type") == "node":
                lat = element.get("lat")
                lon = element.get("lon")
            elif "center" in element:
                lat = element["center"].get("lat")
                lon = element["center"].get("lon")
            else:
                continue

            if lat is None or lon is None:
                continue

            restaurant_id = f"osm_{element.get('type')}_{element.get('id')}"
            if restaurant_id in seen_ids:
                continue
            seen_ids.add(restaurant_id)

            restaurants.append(
                Restaurant(
                    id=restaurant_id,
                    name=name,
                    latitude=lat,
                    longitude=lon,
                    address=self._build_address(tags),
                    cuisine=tags.get("cuisine"),
                    opening_hours=tags.get("opening_hours"),
                    phone=tags.get("phone") or tags.get("contact:phone"),
                    website=tags.get("website") or tags.get("contact:website"),
                    amenity_type=tags.get("amenity", "restaurant"),
                    has_nutrition_data=restaurant_id_for(name) is not None,
                )
            )

        return restaurants

    def _build_address(self, tags: dict) -> str | None:
        address_parts = []
        if tags.get("addr:street"):
            addr = tags.get("addr:housenumber", "") + " " + tags["addr:street"]
            address_parts.append(addr.strip())
        if tags.get("addr:city"):
            address_parts.append(tags["addr:city"])
        return ", ".join(address_parts) if address_parts else None
