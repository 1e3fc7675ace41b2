"""Unit tests for environment-driven settings."""

from pathlib import Path

import pytest

from app.config import DEFAULT_NUTRITION_DATA_DIR, Settings
from app.services.cache import (
    NUTRITION_BY_NAME,
    RESTAURANTS_BY_BUCKET,
    RESTAURANTS_BY_REGION,
    SEARCH_BY_QUERY,
)
from app.services.osm import DEFAULT_OVERPASS_URLS

ENV_VARS = (
    "MEALMAP_REGION_TTL_SECONDS",
    "MEALMAP_NUTRITION_TTL_SECONDS",
    "MEALMAP_SEARCH_TTL_SECONDS",
    "MEALMAP_BUCKET_TTL_SECONDS",
    "MEALMAP_CACHE_MAX_ENTRIES",
    "MEALMAP_SWEEP_INTERVAL_SECONDS",
    "MEALMAP_OVERPASS_URLS",
    "MEALMAP_HTTP_TIMEOUT",
    "MEALMAP_NUTRITION_DATA_DIR",
    "MEALMAP_CORS_ORIGINS",
    "REDIS_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self) -> None:
        settings = Settings.from_env()

        assert settings.region_ttl_seconds == 300
        assert settings.nutrition_ttl_seconds == 3600
        assert settings.search_ttl_seconds == 600
        assert settings.bucket_ttl_seconds == 900
        assert settings.cache_max_entries == 500
        assert settings.overpass_urls == DEFAULT_OVERPASS_URLS
        assert settings.nutrition_data_dir == DEFAULT_NUTRITION_DATA_DIR
        assert settings.redis_url is None

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("MEALMAP_SEARCH_TTL_SECONDS", "120")
        monkeypatch.setenv("MEALMAP_CACHE_MAX_ENTRIES", "50")
        monkeypatch.setenv("MEALMAP_OVERPASS_URLS", "https://a.example/api, https://b.example/api")
        monkeypatch.setenv("MEALMAP_NUTRITION_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")

        settings = Settings.from_env()

        assert settings.search_ttl_seconds == 120
        assert settings.cache_max_entries == 50
        assert settings.overpass_urls == ("https://a.example/api", "https://b.example/api")
        assert settings.nutrition_data_dir == tmp_path
        assert settings.redis_url == "redis://localhost:6379/0"

    def test_non_numeric_value_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEALMAP_BUCKET_TTL_SECONDS", "fifteen minutes")
        with pytest.raises(ValueError, match="MEALMAP_BUCKET_TTL_SECONDS"):
            Settings.from_env()

    def test_cache_namespaces(self) -> None:
        namespaces = {ns.name: ns for ns in Settings().cache_namespaces()}

        assert namespaces[RESTAURANTS_BY_REGION].ttl_seconds == 300
        assert namespaces[NUTRITION_BY_NAME].ttl_seconds == 3600
        assert namespaces[SEARCH_BY_QUERY].ttl_seconds == 600
        assert namespaces[RESTAURANTS_BY_BUCKET].ttl_seconds == 900
        assert namespaces[SEARCH_BY_QUERY].max_entries == 500

    def test_zero_max_entries_means_unbounded(self) -> None:
        namespaces = Settings(cache_max_entries=0).cache_namespaces()
        assert all(ns.max_entries is None for ns in namespaces)
