"""MealMap data models."""

from .core import (
    AppError,
    CacheStats,
    ErrorCode,
    NamespaceStats,
    NutritionItem,
    Restaurant,
    RestaurantNutritionData,
    SearchKind,
    SearchMatch,
    SearchResult,
)

__all__ = [
    "AppError",
    "CacheStats",
    "ErrorCode",
    "NamespaceStats",
    "NutritionItem",
    "Restaurant",
    "RestaurantNutritionData",
    "SearchKind",
    "SearchMatch",
    "SearchResult",
]
