"""Unit tests for the cached restaurant list service."""

from unittest.mock import AsyncMock

import pytest

from app.models import Restaurant
from app.services.cache import (
    RESTAURANTS_BY_BUCKET,
    RESTAURANTS_BY_REGION,
    CacheService,
    NamespacedCache,
)
from app.services.osm import FetchError, OSMOverpassService
from app.services.restaurants import RestaurantService


def make_restaurant(restaurant_id: str, name: str = "Subway") -> Restaurant:
    return Restaurant(id=restaurant_id, name=name, latitude=37.775, longitude=-122.419)


class TestRestaurantService:
    """Tests for RestaurantService cache-aside behaviour."""

    def setup_method(self) -> None:
        self.cache = NamespacedCache()
        self.osm = AsyncMock(spec=OSMOverpassService)
        self.restaurants = [make_restaurant("osm_node_1"), make_restaurant("osm_node_2")]
        self.osm.query_restaurants_near.return_value = self.restaurants
        self.osm.query_restaurants_in_bbox.return_value = self.restaurants
        self.service = RestaurantService(self.cache, self.osm)

    @pytest.mark.asyncio
    async def test_nearby_fetches_on_miss(self) -> None:
        result = await self.service.nearby(37.77490001, -122.41940001, 5000)

        assert result == self.restaurants
        self.osm.query_restaurants_near.assert_awaited_once_with(37.77490001, -122.41940001, 5000)
        assert self.cache.get(RESTAURANTS_BY_BUCKET, "37.775,-122.419,5000") is result

    @pytest.mark.asyncio
    async def test_nearby_points_in_same_bucket_reuse_result(self) -> None:
        first = await self.service.nearby(37.77490001, -122.41940001, 5000)
        second = await self.service.nearby(37.7751, -122.4191, 5000)

        assert second is first
        assert self.osm.query_restaurants_near.await_count == 1

    @pytest.mark.asyncio
    async def test_different_radius_is_a_different_bucket(self) -> None:
        await self.service.nearby(37.7749, -122.4194, 5000)
        await self.service.nearby(37.7749, -122.4194, 1000)
        assert self.osm.query_restaurants_near.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self) -> None:
        self.osm.query_restaurants_near.side_effect = FetchError("down")

        with pytest.raises(FetchError):
            await self.service.nearby(37.7749, -122.4194, 5000)

        assert self.cache.stats().total_entries == 0

        self.osm.query_restaurants_near.side_effect = None
        assert await self.service.nearby(37.7749, -122.4194, 5000) == self.restaurants

    @pytest.mark.asyncio
    async def test_in_region_uses_region_namespace(self) -> None:
        await self.service.in_region(37.7, -122.5, 37.8, -122.4)
        await self.service.in_region(37.70001, -122.5, 37.8, -122.4)

        assert self.osm.query_restaurants_in_bbox.await_count == 1
        stats = self.cache.stats()
        assert stats.namespaces[RESTAURANTS_BY_REGION].entries == 1
        assert stats.namespaces[RESTAURANTS_BY_BUCKET].entries == 0
        assert stats.total_cached_restaurants == 2

    @pytest.mark.asyncio
    async def test_second_tier_round_trip(self) -> None:
        store = AsyncMock(spec=CacheService)
        store.get.return_value = None
        service = RestaurantService(self.cache, self.osm, store=store)

        await service.nearby(37.7749, -122.4194, 5000)

        namespace, key, payload = store.set.await_args.args
        assert namespace == RESTAURANTS_BY_BUCKET
        assert key == "37.775,-122.419,5000"
        assert payload[0]["id"] == "osm_node_1"
        assert store.set.await_args.kwargs["ttl_seconds"] == 900

    @pytest.mark.asyncio
    async def test_second_tier_hit_skips_fetch(self) -> None:
        store = AsyncMock(spec=CacheService)
        store.get.return_value = [self.restaurants[0].model_dump(mode="json")]
        service = RestaurantService(self.cache, self.osm, store=store)

        result = await service.nearby(37.7749, -122.4194, 5000)

        assert result == [self.restaurants[0]]
        self.osm.query_restaurants_near.assert_not_awaited()
