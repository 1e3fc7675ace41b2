"""Unit tests for cache key derivation."""

from app.utils.cache import (
    bucket_key,
    normalize_query,
    normalize_restaurant_name,
    region_key,
)


class TestBucketKey:
    """Tests for the 3-decimal location bucket key."""

    def test_format(self) -> None:
        assert bucket_key(37.77490001, -122.41940001, 5000) == "37.775,-122.419,5000"

    def test_nearby_points_share_bucket(self) -> None:
        assert bucket_key(37.77490001, -122.41940001, 5000) == bucket_key(
            37.7751, -122.4191, 5000
        )

    def test_distant_points_differ(self) -> None:
        assert bucket_key(37.7749, -122.4194, 5000) != bucket_key(37.7849, -122.4194, 5000)

    def test_radius_is_truncated_to_int(self) -> None:
        assert bucket_key(1.0, 2.0, 5000.9) == "1.000,2.000,5000"

    def test_radius_is_part_of_key(self) -> None:
        assert bucket_key(1.0, 2.0, 1000) != bucket_key(1.0, 2.0, 5000)


class TestRegionKey:
    """Tests for bounding-box keys."""

    def test_format(self) -> None:
        assert region_key(37.7, -122.5, 37.8, -122.4) == "37.700,-122.500,37.800,-122.400"

    def test_small_pans_share_key(self) -> None:
        assert region_key(37.70001, -122.5, 37.8, -122.4) == region_key(
            37.70004, -122.50001, 37.8, -122.4
        )


class TestNormalization:
    """Tests for name and query normalization."""

    def test_query_is_trimmed_and_lowercased(self) -> None:
        assert normalize_query("  McDonalds \n") == "mcdonalds"

    def test_restaurant_name_strips_punctuation(self) -> None:
        assert normalize_restaurant_name("McDonald's") == "mcdonalds"
        assert normalize_restaurant_name("Chick-fil-A") == "chickfila"
        assert normalize_restaurant_name("P.F. Chang's") == "pfchangs"
        assert normalize_restaurant_name("Noodles & Company") == "noodlescompany"
