"""Cache-aside lookup shared by the fetching services.

Order: memory cache, then the optional second tier, then the fetcher. A
value found in the second tier is copied back into memory. Fetch errors
propagate and leave both tiers untouched.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

from pydantic import ValidationError
from redis.exceptions import RedisError

from .service import CacheService, NamespacedCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def cached_lookup(
    cache: NamespacedCache,
    namespace: str,
    key: str,
    fetch: Callable[[], Awaitable[T]],
    *,
    store: Optional[CacheService] = None,
    encode: Callable[[T], Any] = lambda value: value,
    decode: Callable[[Any], T] = lambda raw: raw,
) -> T:
    """Return the cached value for (namespace, key), fetching it on miss.

    Args:
        cache: The in-memory cache.
        namespace: Cache namespace name.
        key: Normalized key within the namespace.
        fetch: Coroutine factory called on a miss in every tier.
        store: Optional persistent second tier.
        encode: Converts a value to JSON-compatible data for the second tier.
        decode: Rebuilds a value from second-tier data.
    """
    cached = cache.get(namespace, key)
    if cached is not None:
        return cached

    if store is not None:
        try:
            raw = await store.get(namespace, key)
        except RedisError as e:
            logger.warning(f"[CACHE] Second tier read failed for {namespace}:{key}: {e}")
            raw = None
        if raw is not None:
            try:
                value = decode(raw)
            except (ValidationError, TypeError, ValueError) as e:
                logger.warning(f"[CACHE] Ignoring malformed second tier value for {namespace}:{key}: {e}")
            else:
                cache.put(namespace, key, value)
                return value

    value = await fetch()
    cache.put(namespace, key, value)

    if store is not None:
        try:
            await store.set(namespace, key, encode(value), ttl_seconds=cache.ttl(namespace))
        except RedisError as e:
            logger.warning(f"[CACHE] Second tier write failed for {namespace}:{key}: {e}")

    return value
