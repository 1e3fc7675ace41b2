"""Cache key derivation helpers.

Keys must be derived the same way by every caller, otherwise lookups that
should share a cache slot end up in different ones.

- Location buckets: coordinates formatted to 3 decimals (~111m grid) plus
  the integer search radius, so small map pans reuse the same result set.
- Regions: bounding box corners formatted to 3 decimals.
- Names and queries: lower-cased and whitespace-trimmed.
"""

BUCKET_PRECISION = 3


def bucket_key(lat: float, lon: float, radius: float) -> str:
    """Build the location-bucket key for a point and a search radius.

    Example:
        >>> bucket_key(37.77490001, -122.41940001, 5000)
        '37.775,-122.419,5000'
    """
    return f"{lat:.{BUCKET_PRECISION}f},{lon:.{BUCKET_PRECISION}f},{int(radius)}"


def region_key(south: float, west: float, north: float, east: float) -> str:
    """Build the key for a bounding-box query."""
    return ",".join(
        f"{value:.{BUCKET_PRECISION}f}" for value in (south, west, north, east)
    )


def normalize_query(query: str) -> str:
    """Lower-case and trim a free-text query or restaurant name."""
    return query.strip().lower()


def normalize_restaurant_name(name: str) -> str:
    """Collapse a restaurant name to its chain lookup form.

    ``"McDonald's"`` and ``"Mc Donalds"`` both become ``"mcdonalds"``.
    """
    normalized = normalize_query(name)
    for char in ("'", "’", ".", " ", "-", "&"):
        normalized = normalized.replace(char, "")
    return normalized
