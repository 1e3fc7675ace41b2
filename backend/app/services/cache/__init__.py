"""Cache service module.

In-memory namespaced TTL cache, plus an optional Redis second tier.
"""

from .lookup import cached_lookup
from .service import (
    ALL_NAMESPACES,
    DEFAULT_NAMESPACES,
    NUTRITION_BY_NAME,
    RESTAURANTS_BY_BUCKET,
    RESTAURANTS_BY_REGION,
    SEARCH_BY_QUERY,
    CacheNamespace,
    CacheService,
    NamespacedCache,
    RedisCacheService,
    UnknownNamespaceError,
)

__all__ = [
    "cached_lookup",
    "ALL_NAMESPACES",
    "DEFAULT_NAMESPACES",
    "NUTRITION_BY_NAME",
    "RESTAURANTS_BY_BUCKET",
    "RESTAURANTS_BY_REGION",
    "SEARCH_BY_QUERY",
    "CacheNamespace",
    "CacheService",
    "NamespacedCache",
    "RedisCacheService",
    "UnknownNamespaceError",
]
