"""API routes for MealMap.

Every lookup goes through the shared namespaced cache:
- /restaurants/nearby  -> restaurants-by-bucket (3-decimal location bucket)
- /restaurants/region  -> restaurants-by-region (bounding box)
- /restaurants/search  -> search-by-query
- /nutrition/{name}    -> nutrition-by-name

The /cache endpoints expose statistics and the clear / sweep hooks used for
forced refreshes and memory pressure.

Services are built once in the application lifespan and handed to the
routes through FastAPI dependencies.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from app.models import (
    AppError,
    CacheStats,
    ErrorCode,
    Restaurant,
    RestaurantNutritionData,
    SearchResult,
)
from app.services import (
    CacheService,
    FetchError,
    NamespacedCache,
    NutritionNotFoundError,
    NutritionService,
    RestaurantService,
    SearchService,
    UnknownNamespaceError,
)
from app.services.cache import ALL_NAMESPACES
from app.services.nutrition import restaurants_with_nutrition_data
from app.services.restaurants import DEFAULT_RADIUS_M

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_RADIUS_M = 50000


# ─── Dependencies ───

def get_cache(request: Request) -> NamespacedCache:
    return request.app.state.cache


def get_store(request: Request) -> Optional[CacheService]:
    return getattr(request.app.state, "store", None)


def get_restaurant_service(request: Request) -> RestaurantService:
    return request.app.state.restaurant_service


def get_nutrition_service(request: Request) -> NutritionService:
    return request.app.state.nutrition_service


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


# ─── Response models ───

class RestaurantListResponse(BaseModel):
    """Response model for restaurant list lookups."""
    success: bool
    restaurants: list[Restaurant] = Field(default_factory=list)
    count: int = 0
    error: Optional[AppError] = None


class SearchResponse(BaseModel):
    """Response model for restaurant search."""
    success: bool
    result: Optional[SearchResult] = None
    error: Optional[AppError] = None


class NutritionResponse(BaseModel):
    """Response model for a nutrition lookup."""
    success: bool
    data: Optional[RestaurantNutritionData] = None
    error: Optional[AppError] = None


class NutritionCatalogResponse(BaseModel):
    """Restaurants with nutrition tables."""
    restaurants: list[str]


class CacheOperationResponse(BaseModel):
    """Response model for cache clear / sweep."""
    success: bool
    namespace: str = ALL_NAMESPACES
    removed: int = 0
    error: Optional[AppError] = None


def _invalid_input(e: Exception, user_message: str) -> AppError:
    return AppError(code=ErrorCode.INVALID_INPUT, message=str(e), user_message=user_message)


def _fetch_failed(e: Exception) -> AppError:
    return AppError(
        code=ErrorCode.API_ERROR,
        message=str(e),
        user_message="Restaurant data is unavailable right now. Please try again.",
    )


# ─── Restaurants ───

@router.get("/restaurants/nearby", response_model=RestaurantListResponse)
async def nearby_restaurants(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: float = Query(DEFAULT_RADIUS_M, gt=0, le=MAX_RADIUS_M),
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantListResponse:
    """Restaurants within ``radius`` meters of a point."""
    try:
        restaurants = await service.nearby(lat, lon, radius)
    except ValueError as e:
        return RestaurantListResponse(
            success=False, error=_invalid_input(e, "Invalid location.")
        )
    except FetchError as e:
        logger.warning(f"[NEARBY] Fetch failed for {lat},{lon}: {e}")
        return RestaurantListResponse(success=False, error=_fetch_failed(e))

    return RestaurantListResponse(
        success=True, restaurants=restaurants, count=len(restaurants)
    )


@router.get("/restaurants/region", response_model=RestaurantListResponse)
async def region_restaurants(
    south: float = Query(..., ge=-90, le=90),
    west: float = Query(..., ge=-180, le=180),
    north: float = Query(..., ge=-90, le=90),
    east: float = Query(..., ge=-180, le=180),
    service: RestaurantService = Depends(get_restaurant_service),
) -> RestaurantListResponse:
    """Restaurants inside a bounding box (the visible map region)."""
    try:
        restaurants = await service.in_region(south, west, north, east)
    except ValueError as e:
        return RestaurantListResponse(
            success=False, error=_invalid_input(e, "Invalid map region.")
        )
    except FetchError as e:
        logger.warning(f"[REGION] Fetch failed: {e}")
        return RestaurantListResponse(success=False, error=_fetch_failed(e))

    return RestaurantListResponse(
        success=True, restaurants=restaurants, count=len(restaurants)
    )


@router.get("/restaurants/search", response_model=SearchResponse)
async def search_restaurants(
    q: str = Query(..., min_length=1),
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius: float = Query(DEFAULT_RADIUS_M, gt=0, le=MAX_RADIUS_M),
    max_distance: Optional[float] = Query(None, gt=0),
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Search nearby restaurants by name or cuisine."""
    try:
        result = await service.search(q, lat, lon, radius, max_distance_m=max_distance)
    except ValueError as e:
        return SearchResponse(
            success=False, error=_invalid_input(e, "Please enter a search term.")
        )
    except FetchError as e:
        logger.warning(f"[SEARCH] Fetch failed for '{q}': {e}")
        return SearchResponse(success=False, error=_fetch_failed(e))

    return SearchResponse(success=True, result=result)


# ─── Nutrition ───

@router.get("/nutrition", response_model=NutritionCatalogResponse)
async def nutrition_catalog() -> NutritionCatalogResponse:
    """Restaurant chains that have nutrition data."""
    return NutritionCatalogResponse(restaurants=restaurants_with_nutrition_data())


@router.get("/nutrition/{restaurant_name}", response_model=NutritionResponse)
async def restaurant_nutrition(
    restaurant_name: str,
    service: NutritionService = Depends(get_nutrition_service),
) -> NutritionResponse:
    """Nutrition table for a restaurant chain."""
    try:
        data = await service.get_nutrition(restaurant_name)
    except ValueError as e:
        return NutritionResponse(
            success=False, error=_invalid_input(e, "Please provide a restaurant name.")
        )
    except NutritionNotFoundError as e:
        return NutritionResponse(
            success=False,
            error=AppError(
                code=ErrorCode.NOT_FOUND,
                message=f"No nutrition data for {e}",
                user_message="Nutrition data isn't available for this restaurant yet.",
            ),
        )

    return NutritionResponse(success=True, data=data)


# ─── Cache management ───

@router.get("/cache/stats", response_model=CacheStats)
async def cache_stats(cache: NamespacedCache = Depends(get_cache)) -> CacheStats:
    """Entry counts and hit/miss counters per namespace."""
    return cache.stats()


@router.post("/cache/clear", response_model=CacheOperationResponse)
async def clear_cache(
    namespace: str = Query(ALL_NAMESPACES),
    cache: NamespacedCache = Depends(get_cache),
    store: Optional[CacheService] = Depends(get_store),
) -> CacheOperationResponse:
    """Drop one namespace, or everything, from the cache (forced refresh)."""
    try:
        removed = cache.clear(namespace)
    except UnknownNamespaceError as e:
        return CacheOperationResponse(
            success=False,
            namespace=namespace,
            error=_invalid_input(e, f"Unknown cache namespace: {namespace}"),
        )

    if store is not None:
        try:
            await store.invalidate(namespace)
        except RedisError as e:
            logger.warning(f"[CACHE] Second tier clear failed for {namespace}: {e}")

    return CacheOperationResponse(success=True, namespace=namespace, removed=removed)


@router.post("/cache/sweep", response_model=CacheOperationResponse)
async def sweep_cache(cache: NamespacedCache = Depends(get_cache)) -> CacheOperationResponse:
    """Remove expired entries from every namespace."""
    return CacheOperationResponse(success=True, removed=cache.invalidate_expired())
