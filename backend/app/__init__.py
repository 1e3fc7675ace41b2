"""MealMap backend application."""
