"""Unit tests for the cache-aside lookup and the Redis second tier."""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.services.cache import (
    NUTRITION_BY_NAME,
    CacheService,
    NamespacedCache,
    RedisCacheService,
    cached_lookup,
)


class TestCachedLookup:
    """Tests for cached_lookup()."""

    def setup_method(self) -> None:
        self.cache = NamespacedCache()

    @pytest.mark.asyncio
    async def test_miss_fetches_and_populates(self) -> None:
        fetch = AsyncMock(return_value=["a"])

        result = await cached_lookup(self.cache, NUTRITION_BY_NAME, "k", fetch)

        assert result == ["a"]
        assert self.cache.get(NUTRITION_BY_NAME, "k") == ["a"]
        fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hit_skips_fetch(self) -> None:
        self.cache.put(NUTRITION_BY_NAME, "k", ["cached"])
        fetch = AsyncMock(return_value=["fresh"])

        result = await cached_lookup(self.cache, NUTRITION_BY_NAME, "k", fetch)

        assert result == ["cached"]
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_error_leaves_cache_empty(self) -> None:
        fetch = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await cached_lookup(self.cache, NUTRITION_BY_NAME, "k", fetch)

        assert self.cache.stats().total_entries == 0

    @pytest.mark.asyncio
    async def test_second_tier_hit_warms_memory(self) -> None:
        store = AsyncMock(spec=CacheService)
        store.get.return_value = {"n": 1}
        fetch = AsyncMock()

        result = await cached_lookup(
            self.cache, NUTRITION_BY_NAME, "k", fetch, store=store, decode=lambda raw: raw["n"]
        )

        assert result == 1
        assert self.cache.get(NUTRITION_BY_NAME, "k") == 1
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetched_value_written_to_second_tier_with_namespace_ttl(self) -> None:
        store = AsyncMock(spec=CacheService)
        store.get.return_value = None
        fetch = AsyncMock(return_value=5)

        await cached_lookup(
            self.cache, NUTRITION_BY_NAME, "k", fetch, store=store, encode=lambda v: {"n": v}
        )

        store.set.assert_awaited_once_with(NUTRITION_BY_NAME, "k", {"n": 5}, ttl_seconds=3600)

    @pytest.mark.asyncio
    async def test_second_tier_errors_are_not_fatal(self) -> None:
        store = AsyncMock(spec=CacheService)
        store.get.side_effect = RedisConnectionError("down")
        store.set.side_effect = RedisConnectionError("down")
        fetch = AsyncMock(return_value=7)

        result = await cached_lookup(self.cache, NUTRITION_BY_NAME, "k", fetch, store=store)

        assert result == 7
        assert self.cache.get(NUTRITION_BY_NAME, "k") == 7

    @pytest.mark.asyncio
    async def test_malformed_second_tier_value_falls_through_to_fetch(self) -> None:
        store = AsyncMock(spec=CacheService)
        store.get.return_value = {"unexpected": True}
        fetch = AsyncMock(return_value=3)

        def decode(raw: dict) -> int:
            raise ValueError("bad payload")

        result = await cached_lookup(
            self.cache, NUTRITION_BY_NAME, "k", fetch, store=store, decode=decode
        )

        assert result == 3
        fetch.assert_awaited_once()


class TestRedisCacheService:
    """Tests for RedisCacheService against a mocked client."""

    def setup_method(self) -> None:
        self.client = AsyncMock()
        self.service = RedisCacheService()
        self.service._client = self.client

    def test_build_key(self) -> None:
        assert CacheService.build_key("nutrition-by-name", "subway") == (
            "mealmap:nutrition-by-name:subway"
        )

    @pytest.mark.asyncio
    async def test_set_serializes_with_expiry(self) -> None:
        await self.service.set("search-by-query", "pizza", [{"id": "r1"}], ttl_seconds=600)

        self.client.set.assert_awaited_once_with(
            "mealmap:search-by-query:pizza", json.dumps([{"id": "r1"}]), ex=600
        )

    @pytest.mark.asyncio
    async def test_set_uses_at_least_one_second(self) -> None:
        await self.service.set("search-by-query", "pizza", 1, ttl_seconds=0.2)
        assert self.client.set.await_args.kwargs["ex"] == 1

    @pytest.mark.asyncio
    async def test_get_deserializes(self) -> None:
        self.client.get.return_value = '{"a": 1}'
        assert await self.service.get("nutrition-by-name", "subway") == {"a": 1}
        self.client.get.assert_awaited_once_with("mealmap:nutrition-by-name:subway")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        self.client.get.return_value = None
        assert await self.service.get("nutrition-by-name", "subway") is None

    @pytest.mark.asyncio
    async def test_get_undecodable_value_is_dropped(self) -> None:
        self.client.get.return_value = "not-json{"
        assert await self.service.get("nutrition-by-name", "subway") is None
        self.client.delete.assert_awaited_once_with("mealmap:nutrition-by-name:subway")

    @pytest.mark.asyncio
    async def test_invalidate_namespace_scans_pattern(self) -> None:
        self.client.scan.side_effect = [(5, ["k1", "k2"]), (0, ["k3"])]
        self.client.delete.side_effect = [2, 1]

        removed = await self.service.invalidate("search-by-query")

        assert removed == 3
        first_call = self.client.scan.await_args_list[0]
        assert first_call.kwargs["match"] == "mealmap:search-by-query:*"

    @pytest.mark.asyncio
    async def test_invalidate_all(self) -> None:
        self.client.scan.return_value = (0, [])
        assert await self.service.invalidate() == 0
        assert self.client.scan.await_args.kwargs["match"] == "mealmap:*:*"

    @pytest.mark.asyncio
    async def test_disconnect_closes_client(self) -> None:
        await self.service.disconnect()
        self.client.aclose.assert_awaited_once()
        assert self.service._client is None
