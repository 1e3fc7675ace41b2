"""Nutrition service module."""

from .service import (
    NutritionNotFoundError,
    NutritionService,
    display_name_for,
    parse_nutrition_csv,
    restaurant_id_for,
    restaurants_with_nutrition_data,
)

__all__ = [
    "NutritionNotFoundError",
    "NutritionService",
    "display_name_for",
    "parse_nutrition_csv",
    "restaurant_id_for",
    "restaurants_with_nutrition_data",
]
