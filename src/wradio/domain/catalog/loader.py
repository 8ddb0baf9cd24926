"""
Station catalog loading and normalization.

The catalog is a JSON document with a ``stations`` list; each entry has an
optional ``id``, an optional ``name`` and a ``tracks`` list of
``{"url": ..., "title": ...}`` objects.
"""

import json
from pathlib import Path
from typing import Any

import requests
from loguru import logger

from ..exceptions import CatalogEmpty, CatalogLoadError
from .models import Station, Track, is_network_url


def _normalize_track(raw: Any) -> Track | None:
    if not isinstance(raw, dict):
        return None
    url = raw.get("url")
    title = raw.get("title")
    return Track(
        url=url if isinstance(url, str) else "",
        title=title if isinstance(title, str) and title else None,
    )


def normalize_catalog(data: Any) -> list[Station]:
    """Validate a parsed catalog document and normalize its stations.

    Missing ids and names are synthesized as ``station-<index>`` and
    ``Station <index+1>``. Track validity is not checked here; invalid
    tracks are kept and filtered at selection time.

    Args:
        data: Parsed JSON document

    Returns:
        List of stations in document order

    Raises:
        CatalogEmpty: If the document has no stations
    """
    if not isinstance(data, dict):
        raise CatalogEmpty()
    raw_stations = data.get("stations")
    if not isinstance(raw_stations, list) or not raw_stations:
        raise CatalogEmpty()

    stations = []
    for index, raw in enumerate(raw_stations):
        raw = raw if isinstance(raw, dict) else {}
        raw_tracks = raw.get("tracks")
        tracks = []
        if isinstance(raw_tracks, list):
            for raw_track in raw_tracks:
                track = _normalize_track(raw_track)
                if track is None:
                    logger.debug(f"Dropping malformed track entry in station {index}")
                    continue
                tracks.append(track)

        stations.append(
            Station(
                id=str(raw.get("id") or f"station-{index}"),
                name=str(raw.get("name") or f"Station {index + 1}"),
                tracks=tuple(tracks),
            )
        )

    logger.info(f"Normalized catalog: {len(stations)} stations")
    return stations


def load_catalog(source: str, timeout: float = 10.0) -> list[Station]:
    """Load the catalog from a local JSON file or an http(s) URL.

    Args:
        source: File path or URL
        timeout: Request timeout in seconds for remote catalogs

    Returns:
        Normalized stations

    Raises:
        CatalogLoadError: If the document cannot be read or parsed
        CatalogEmpty: If it contains no stations
    """
    if is_network_url(source):
        try:
            response = requests.get(
                source, timeout=timeout, headers={"Cache-Control": "no-cache"}
            )
        except requests.RequestException as e:
            raise CatalogLoadError(f"Failed to load {source}: {e}") from e
        if not response.ok:
            raise CatalogLoadError(
                f"Failed to load {source} ({response.status_code})"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise CatalogLoadError(f"{source} is not valid JSON: {e}") from e
    else:
        path = Path(source).expanduser()
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise CatalogLoadError(f"Catalog not found: {path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogLoadError(f"Failed to load {path}: {e}") from e

    return normalize_catalog(data)
