"""Search service module."""

from .service import SearchService, rank_restaurants, search_key

__all__ = [
    "SearchService",
    "rank_restaurants",
    "search_key",
]
