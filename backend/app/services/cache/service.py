"""Cache service implementation.

Two layers:

- ``NamespacedCache``: the in-process store. Every lookup category
  (restaurants by region, restaurants by location bucket, nutrition by
  name, search by query) is a namespace with its own TTL and optional
  entry cap. The cache never fetches anything itself; callers check it,
  fetch on miss, then populate it.
- ``CacheService`` / ``RedisCacheService``: an optional persistent second
  tier mirroring fetched results, so a restarted process can warm up
  without hitting the external APIs again.

Entry validity: an entry is served only while ``now - stored_at < ttl``.
A read past that point is a miss and purges the entry.
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

import redis.asyncio as redis

from app.models import CacheStats, NamespaceStats

logger = logging.getLogger(__name__)

V = TypeVar("V")

RESTAURANTS_BY_REGION = "restaurants-by-region"
NUTRITION_BY_NAME = "nutrition-by-name"
SEARCH_BY_QUERY = "search-by-query"
RESTAURANTS_BY_BUCKET = "restaurants-by-bucket"

ALL_NAMESPACES = "all"

# Namespaces whose values are restaurant lists, summed in stats()
RESTAURANT_NAMESPACES = (RESTAURANTS_BY_REGION, RESTAURANTS_BY_BUCKET)


@dataclass(frozen=True)
class CacheNamespace:
    """Configuration of one logical partition of the cache."""

    name: str
    ttl_seconds: float
    max_entries: Optional[int] = None

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive for {self.name}")
        if self.max_entries is not None and self.max_entries <= 0:
            raise ValueError(f"max_entries must be positive for {self.name}")


DEFAULT_NAMESPACES = (
    CacheNamespace(RESTAURANTS_BY_REGION, ttl_seconds=300),
    CacheNamespace(NUTRITION_BY_NAME, ttl_seconds=3600),
    CacheNamespace(SEARCH_BY_QUERY, ttl_seconds=600),
    CacheNamespace(RESTAURANTS_BY_BUCKET, ttl_seconds=900),
)


class UnknownNamespaceError(KeyError):
    """Raised when an operation names a namespace that was never configured."""


@dataclass
class CacheEntry(Generic[V]):
    key: str
    value: V
    stored_at: float


@dataclass
class _Partition:
    config: CacheNamespace
    entries: "OrderedDict[str, CacheEntry]" = field(default_factory=OrderedDict)
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expired: int = 0


def _hit_rate(hits: int, misses: int) -> float:
    total = hits + misses
    return hits / total if total else 0.0


def _item_count(value: Any) -> int:
    """Number of records inside a cached value (restaurant lists, nutrition tables)."""
    items = getattr(value, "items", None)
    if isinstance(items, list):
        return len(items)
    if isinstance(value, (list, tuple)):
        return len(value)
    return 0


class NamespacedCache:
    """Thread-safe, in-memory, multi-namespace TTL cache.

    A single lock guards all partitions. It is never held across an
    ``await``, so the cache is safe to use from both worker threads and
    asyncio tasks.

    Attributes:
        _partitions: Namespace name to its entries and counters.
        _clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        namespaces: Iterable[CacheNamespace] = DEFAULT_NAMESPACES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._partitions: dict[str, _Partition] = {}
        for namespace in namespaces:
            if namespace.name == ALL_NAMESPACES:
                raise ValueError(f"'{ALL_NAMESPACES}' is reserved")
            if namespace.name in self._partitions:
                raise ValueError(f"Duplicate namespace: {namespace.name}")
            self._partitions[namespace.name] = _Partition(config=namespace)
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def namespaces(self) -> list[str]:
        return list(self._partitions)

    def ttl(self, namespace: str) -> float:
        return self._partition(namespace).config.ttl_seconds

    def _partition(self, namespace: str) -> _Partition:
        try:
            return self._partitions[namespace]
        except KeyError:
            raise UnknownNamespaceError(namespace) from None

    def _is_fresh(self, partition: _Partition, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at < partition.config.ttl_seconds

    def get(self, namespace: str, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired.

        An expired entry is removed as a side effect.
        """
        partition = self._partition(namespace)
        with self._lock:
            entry = partition.entries.get(key)
            if entry is None:
                partition.misses += 1
                logger.debug(f"[CACHE] MISS {namespace}:{key}")
                return None
            if not self._is_fresh(partition, entry, self._clock()):
                del partition.entries[key]
                partition.expired += 1
                partition.misses += 1
                logger.debug(f"[CACHE] EXPIRED {namespace}:{key}")
                return None
            partition.entries.move_to_end(key)
            partition.hits += 1
            logger.debug(f"[CACHE] HIT {namespace}:{key}")
            return entry.value

    def put(self, namespace: str, key: str, value: Any) -> None:
        """Store value under (namespace, key), replacing any previous entry.

        When the namespace has ``max_entries``, the least recently used
        entries are evicted to stay within the cap.
        """
        partition = self._partition(namespace)
        with self._lock:
            partition.entries[key] = CacheEntry(
                key=key, value=value, stored_at=self._clock()
            )
            partition.entries.move_to_end(key)
            max_entries = partition.config.max_entries
            while max_entries is not None and len(partition.entries) > max_entries:
                evicted_key, _ = partition.entries.popitem(last=False)
                partition.evictions += 1
                logger.debug(f"[CACHE] EVICT {namespace}:{evicted_key}")

    def invalidate_expired(self) -> int:
        """Remove every expired entry in every namespace.

        Returns:
            Number of entries removed.
        """
        removed = 0
        with self._lock:
            now = self._clock()
            for partition in self._partitions.values():
                stale = [
                    key
                    for key, entry in partition.entries.items()
                    if not self._is_fresh(partition, entry, now)
                ]
                for key in stale:
                    del partition.entries[key]
                partition.expired += len(stale)
                removed += len(stale)
        if removed:
            logger.info(f"[CACHE] Swept {removed} expired entries")
        return removed

    def clear(self, namespace: str = ALL_NAMESPACES) -> int:
        """Remove all entries of one namespace, or of all of them.

        Hit/miss counters are kept.

        Returns:
            Number of entries removed.
        """
        if namespace == ALL_NAMESPACES:
            partitions = list(self._partitions.values())
        else:
            partitions = [self._partition(namespace)]
        with self._lock:
            removed = 0
            for partition in partitions:
                removed += len(partition.entries)
                partition.entries.clear()
        logger.info(f"[CACHE] Cleared {removed} entries from {namespace}")
        return removed

    def stats(self) -> CacheStats:
        """Snapshot entry counts and hit/miss counters for every namespace."""
        with self._lock:
            namespaces: dict[str, NamespaceStats] = {}
            total_entries = total_hits = total_misses = 0
            total_restaurants = total_nutrition_items = 0
            for name, partition in self._partitions.items():
                namespaces[name] = NamespaceStats(
                    entries=len(partition.entries),
                    hits=partition.hits,
                    misses=partition.misses,
                    evictions=partition.evictions,
                    expired=partition.expired,
                    hit_rate=_hit_rate(partition.hits, partition.misses),
                    ttl_seconds=partition.config.ttl_seconds,
                    max_entries=partition.config.max_entries,
                )
                total_entries += len(partition.entries)
                total_hits += partition.hits
                total_misses += partition.misses
                if name in RESTAURANT_NAMESPACES:
                    total_restaurants += sum(
                        _item_count(entry.value) for entry in partition.entries.values()
                    )
                elif name == NUTRITION_BY_NAME:
                    total_nutrition_items += sum(
                        _item_count(entry.value) for entry in partition.entries.values()
                    )

        return CacheStats(
            namespaces=namespaces,
            total_entries=total_entries,
            total_cached_restaurants=total_restaurants,
            total_cached_nutrition_items=total_nutrition_items,
            hit_rate=_hit_rate(total_hits, total_misses),
        )


class CacheService(ABC):
    """Abstract base class for the persistent second-tier cache.

    Values are stored as JSON under keys built by ``build_key``. Expiry is
    delegated to the backend, using the namespace TTL.
    """

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Any | None:
        """Retrieve a cached value.

        Args:
            namespace: Cache namespace name.
            key: Normalized key within the namespace.

        Returns:
            The deserialized value if found, None otherwise.
        """
        pass

    @abstractmethod
    async def set(
        self, namespace: str, key: str, value: Any, ttl_seconds: float
    ) -> None:
        """Store a JSON-serializable value with a TTL.

        Args:
            namespace: Cache namespace name.
            key: Normalized key within the namespace.
            value: The value to cache (must be JSON serializable).
            ttl_seconds: Time-to-live in seconds.
        """
        pass

    @abstractmethod
    async def invalidate(self, namespace: str = ALL_NAMESPACES) -> int:
        """Remove stored values for a namespace, or for every namespace.

        Returns:
            Number of keys removed.
        """
        pass

    @staticmethod
    def build_key(namespace: str, key: str) -> str:
        """Generate the storage key for a namespaced entry.

        Example:
            >>> CacheService.build_key("nutrition-by-name", "subway")
            'mealmap:nutrition-by-name:subway'
        """
        return f"mealmap:{namespace}:{key}"


class RedisCacheService(CacheService):
    """Redis-based implementation of the second-tier cache.

    Attributes:
        _client: The Redis async client instance.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379") -> None:
        self._redis_url = redis_url
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    async def get(self, namespace: str, key: str) -> Any | None:
        client = await self._ensure_connected()
        value = await client.get(self.build_key(namespace, key))
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"[CACHE] Dropping undecodable Redis value for {namespace}:{key}")
            await client.delete(self.build_key(namespace, key))
            return None

    async def set(
        self, namespace: str, key: str, value: Any, ttl_seconds: float
    ) -> None:
        client = await self._ensure_connected()
        # Redis expiry has whole-second resolution
        await client.set(
            self.build_key(namespace, key),
            json.dumps(value),
            ex=max(1, int(ttl_seconds)),
        )

    async def invalidate(self, namespace: str = ALL_NAMESPACES) -> int:
        """Delete matching keys using SCAN rather than KEYS."""
        client = await self._ensure_connected()
        pattern = self.build_key("*" if namespace == ALL_NAMESPACES else namespace, "*")
        deleted_count = 0

        cursor = 0
        while True:
            cursor, keys = await client.scan(cursor=cursor, match=pattern, count=100)
            if keys:
                deleted_count += await client.delete(*keys)
            if cursor == 0:
                break

        return deleted_count
