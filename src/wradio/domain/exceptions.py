"""Radio exceptions for error handling."""

from typing import Optional


class WradioError(Exception):
    """Base exception for radio operations."""

    pass


class CatalogLoadError(WradioError):
    """Raised when the station catalog cannot be read or parsed."""

    pass


class CatalogEmpty(CatalogLoadError):
    """Raised when the catalog has no stations; the radio stays inert."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "stations.json must include at least one station.")


class NoValidTracks(WradioError):
    """Raised when a station has no playable track."""

    def __init__(self, station_name: str):
        self.station_name = station_name
        super().__init__(f"{station_name} has no valid URLs yet.")


class GraphConstructionFailed(WradioError):
    """Raised when the analysis graph cannot be attached to a playback element.

    Commonly a cross-origin restriction: the element plays the audio but
    cannot expose the decoded signal.
    """

    pass


class PlaybackBlocked(WradioError):
    """Raised when a playback attempt is refused before audio starts."""

    pass


class PlaybackRuntimeFailure(WradioError):
    """Reported when playback started but failed while playing."""

    def __init__(self, url: str, reason: str = "error"):
        self.url = url
        self.reason = reason
        super().__init__(f"Playback failed for {url}: {reason}")
