"""Runtime configuration.

Values come from environment variables (optionally via a ``.env`` file).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from app.services.cache import (
    NUTRITION_BY_NAME,
    RESTAURANTS_BY_BUCKET,
    RESTAURANTS_BY_REGION,
    SEARCH_BY_QUERY,
    CacheNamespace,
)
from app.services.osm.service import DEFAULT_OVERPASS_URLS

load_dotenv()

DEFAULT_NUTRITION_DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "restaurant_data"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings."""

    region_ttl_seconds: float = 300
    nutrition_ttl_seconds: float = 3600
    search_ttl_seconds: float = 600
    bucket_ttl_seconds: float = 900
    # Per namespace; 0 disables the cap
    cache_max_entries: int = 500
    sweep_interval_seconds: float = 60
    overpass_urls: tuple[str, ...] = DEFAULT_OVERPASS_URLS
    http_timeout: float = 30.0
    nutrition_data_dir: Path = DEFAULT_NUTRITION_DATA_DIR
    redis_url: str | None = None
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = os.getenv("MEALMAP_NUTRITION_DATA_DIR")
        return cls(
            region_ttl_seconds=_env_float("MEALMAP_REGION_TTL_SECONDS", 300),
            nutrition_ttl_seconds=_env_float("MEALMAP_NUTRITION_TTL_SECONDS", 3600),
            search_ttl_seconds=_env_float("MEALMAP_SEARCH_TTL_SECONDS", 600),
            bucket_ttl_seconds=_env_float("MEALMAP_BUCKET_TTL_SECONDS", 900),
            cache_max_entries=int(_env_float("MEALMAP_CACHE_MAX_ENTRIES", 500)),
            sweep_interval_seconds=_env_float("MEALMAP_SWEEP_INTERVAL_SECONDS", 60),
            overpass_urls=_env_list("MEALMAP_OVERPASS_URLS", DEFAULT_OVERPASS_URLS),
            http_timeout=_env_float("MEALMAP_HTTP_TIMEOUT", 30.0),
            nutrition_data_dir=Path(data_dir) if data_dir else DEFAULT_NUTRITION_DATA_DIR,
            redis_url=os.getenv("REDIS_URL") or None,
            cors_origins=_env_list("MEALMAP_CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
        )

    def cache_namespaces(self) -> tuple[CacheNamespace, ...]:
        """Namespace configuration for the process-wide cache."""
        max_entries = self.cache_max_entries if self.cache_max_entries > 0 else None
        return (
            CacheNamespace(RESTAURANTS_BY_REGION, self.region_ttl_seconds, max_entries),
            CacheNamespace(NUTRITION_BY_NAME, self.nutrition_ttl_seconds, max_entries),
            CacheNamespace(SEARCH_BY_QUERY, self.search_ttl_seconds, max_entries),
            CacheNamespace(RESTAURANTS_BY_BUCKET, self.bucket_ttl_seconds, max_entries),
        )
