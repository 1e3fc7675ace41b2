"""Core data models for MealMap.

This module contains the Pydantic models shared by the services and the API:
restaurants, nutrition tables, cache statistics and the error envelope.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes returned by the API."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    API_ERROR = "API_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class AppError(BaseModel):
    """Error payload carried in unsuccessful API responses."""

    code: ErrorCode
    message: str = Field(..., description="Technical error message")
    user_message: str = Field(..., description="Message safe to show to users")


class Restaurant(BaseModel):
    """A food venue returned by the geodata service.

    ``id`` is the OSM-based identifier (e.g. ``osm_node_12345``).
    """

    id: str = Field(..., min_length=1, description="OSM-based unique identifier")
    name: str = Field(..., min_length=1, description="Display name")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, description="Street address if tagged")
    cuisine: Optional[str] = Field(None, description="OSM cuisine tag")
    opening_hours: Optional[str] = Field(None, description="Raw OSM opening_hours")
    phone: Optional[str] = None
    website: Optional[str] = None
    amenity_type: str = Field(default="restaurant", description="OSM amenity value")
    has_nutrition_data: bool = Field(
        default=False, description="Whether a nutrition table exists for this chain"
    )


class NutritionItem(BaseModel):
    """Nutrition facts for a single menu item."""

    item: str = Field(..., min_length=1)
    calories: float = 0.0
    fat: float = Field(0.0, description="Fat (g)")
    saturated_fat: float = Field(0.0, description="Saturated fat (g)")
    cholesterol: float = Field(0.0, description="Cholesterol (mg)")
    sodium: float = Field(0.0, description="Sodium (mg)")
    carbs: float = Field(0.0, description="Carbohydrates (g)")
    fiber: float = Field(0.0, description="Fiber (g)")
    sugar: float = Field(0.0, description="Sugar (g)")
    protein: float = Field(0.0, description="Protein (g)")


class RestaurantNutritionData(BaseModel):
    """Nutrition table for one restaurant chain."""

    restaurant_name: str
    restaurant_id: str
    items: list[NutritionItem] = Field(default_factory=list)


class NamespaceStats(BaseModel):
    """Counters for a single cache namespace."""

    entries: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expired: int = 0
    hit_rate: float = 0.0
    ttl_seconds: float
    max_entries: Optional[int] = None


class CacheStats(BaseModel):
    """Snapshot of the whole cache."""

    namespaces: dict[str, NamespaceStats] = Field(default_factory=dict)
    total_entries: int = 0
    total_cached_restaurants: int = Field(
        0, description="Restaurants held across the restaurant namespaces"
    )
    total_cached_nutrition_items: int = 0
    hit_rate: float = 0.0


class SearchKind(str, Enum):
    """How a search query was interpreted."""

    NO_RESULTS = "no_results"
    SINGLE = "single"
    CHAIN = "chain"
    CUISINE = "cuisine"
    PARTIAL_NAME = "partial_name"


class SearchMatch(BaseModel):
    """A restaurant matching a search query."""

    restaurant: Restaurant
    match_type: str = Field(..., description="'exact', 'name' or 'cuisine'")
    distance_m: Optional[float] = Field(None, description="Distance from the origin")


class SearchResult(BaseModel):
    """Ranked search matches: exact names first, then partial names, then cuisines."""

    query: str
    kind: SearchKind
    matches: list[SearchMatch] = Field(default_factory=list)