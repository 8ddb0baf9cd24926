"""
Catalog domain module.

Stations, tracks and the loader that normalizes a catalog document.
"""

from .loader import load_catalog, normalize_catalog
from .models import Station, Track, is_network_url, is_valid_track

__all__ = [
    # Models
    "Station",
    "Track",
    "is_network_url",
    "is_valid_track",
    # Loading
    "load_catalog",
    "normalize_catalog",
]
