"""
Station catalog models.

Contains data structures for representing stations and their tracks.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Optional
from urllib.parse import urlparse

PLAYABLE_SCHEMES = ("http", "https")


class Track(NamedTuple):
    """A playable item: a URL and an optional title."""

    url: str
    title: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.title or "Untitled Track"


@dataclass(frozen=True)
class Station:
    """A named, ordered collection of tracks.

    Identity is by ``id``; callers key selection history on it.
    """

    id: str
    name: str
    tracks: tuple[Track, ...] = field(default_factory=tuple)

    @property
    def valid_tracks(self) -> list[Track]:
        return [track for track in self.tracks if is_valid_track(track)]


def is_network_url(url: object) -> bool:
    """True if ``url`` is an absolute http(s) URL with a host."""
    if not isinstance(url, str) or not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in PLAYABLE_SCHEMES and bool(parsed.netloc)


def is_valid_track(track: Optional[Track]) -> bool:
    """A track is valid iff its URL is an absolute http(s) resource."""
    return track is not None and is_network_url(track.url)
