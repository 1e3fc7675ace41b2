"""Restaurant search.

Searches the restaurants around the user by name and cuisine. Results are
ranked in three groups (exact name, partial name, cuisine), each ordered by
distance, and cached under ``search-by-query``.
"""

import logging
from typing import Optional

from app.models import Restaurant, SearchKind, SearchMatch, SearchResult
from app.services.cache import (
    SEARCH_BY_QUERY,
    CacheService,
    NamespacedCache,
    cached_lookup,
)
from app.services.restaurants import DEFAULT_RADIUS_M, RestaurantService
from app.utils.cache import bucket_key, normalize_query
from app.utils.geo import haversine_distance

logger = logging.getLogger(__name__)

# Queries containing one of these are treated as chain lookups
CHAIN_KEYWORDS = (
    "mcdonald", "burger king", "subway", "starbucks", "kfc", "pizza hut",
    "domino", "taco bell", "wendy", "dunkin", "chipotle", "panda express",
    "olive garden", "applebee", "chili", "outback", "red lobster",
)


def is_likely_chain(query: str) -> bool:
    normalized = normalize_query(query)
    return any(keyword in normalized for keyword in CHAIN_KEYWORDS)


def search_key(query: str, lat: float, lon: float, radius: float) -> str:
    """Cache key: the normalized query scoped to the location bucket it ran in."""
    return f"{normalize_query(query)}|{bucket_key(lat, lon, radius)}"


def rank_restaurants(
    query: str,
    restaurants: list[Restaurant],
    lat: float,
    lon: float,
    max_distance_m: Optional[float] = None,
) -> SearchResult:
    """Match and rank restaurants for a query.

    Exact name matches come first, then partial name matches, then cuisine
    matches. A restaurant appears once, in its best group. Without exact
    matches the result is a cuisine search whenever any cuisine matched.
    """
    needle = normalize_query(query)

    def distance(restaurant: Restaurant) -> float:
        return haversine_distance(lat, lon, restaurant.latitude, restaurant.longitude) * 1000

    candidates = [(restaurant, distance(restaurant)) for restaurant in restaurants]
    if max_distance_m is not None:
        candidates = [(r, d) for r, d in candidates if d <= max_distance_m]

    exact, partial, cuisine = [], [], []
    for restaurant, dist in candidates:
        name = restaurant.name.lower()
        if name == needle:
            exact.append((restaurant, dist))
        elif needle in name:
            partial.append((restaurant, dist))
        elif restaurant.cuisine and needle in restaurant.cuisine.lower():
            cuisine.append((restaurant, dist))

    matches = []
    for match_type, group in (("exact", exact), ("name", partial), ("cuisine", cuisine)):
        for restaurant, dist in sorted(group, key=lambda pair: pair[1]):
            matches.append(
                SearchMatch(restaurant=restaurant, match_type=match_type, distance_m=dist)
            )

    if not matches:
        kind = SearchKind.NO_RESULTS
    elif len(exact) == 1:
        kind = SearchKind.SINGLE
    elif exact or (partial and is_likely_chain(needle)):
        kind = SearchKind.CHAIN
    elif cuisine:
        kind = SearchKind.CUISINE
    else:
        kind = SearchKind.PARTIAL_NAME

    return SearchResult(query=needle, kind=kind, matches=matches)


class SearchService:
    """Name and cuisine search over nearby restaurants."""

    def __init__(
        self,
        cache: NamespacedCache,
        restaurants: RestaurantService,
        store: Optional[CacheService] = None,
    ) -> None:
        self._cache = cache
        self._restaurants = restaurants
        self._store = store

    async def search(
        self,
        query: str,
        lat: float,
        lon: float,
        radius: float = DEFAULT_RADIUS_M,
        max_distance_m: Optional[float] = None,
    ) -> SearchResult:
        """Search restaurants around a point.

        Raises:
            ValueError: If the query is empty or the location invalid.
            FetchError: If the restaurant list had to be fetched and failed.
        """
        if not normalize_query(query):
            raise ValueError("query cannot be empty")

        key = search_key(query, lat, lon, radius)
        if max_distance_m is not None:
            key = f"{key}|{float(max_distance_m)}"

        async def run() -> SearchResult:
            nearby = await self._restaurants.nearby(lat, lon, radius)
            result = rank_restaurants(query, nearby, lat, lon, max_distance_m)
            logger.info(
                f"[SEARCH] '{result.query}' -> {len(result.matches)} matches ({result.kind.value})"
            )
            return result

        return await cached_lookup(
            self._cache,
            SEARCH_BY_QUERY,
            key,
            run,
            store=self._store,
            encode=lambda result: result.model_dump(mode="json"),
            decode=SearchResult.model_validate,
        )
