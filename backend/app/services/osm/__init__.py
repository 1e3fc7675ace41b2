"""OSM service module.

Provides the OpenStreetMap Overpass client used to fetch restaurant lists.
"""

from .service import DEFAULT_OVERPASS_URLS, FetchError, OSMOverpassService

__all__ = [
    "DEFAULT_OVERPASS_URLS",
    "FetchError",
    "OSMOverpassService",
]
