"""
Track selection policy for stations.

Picks the next track for a station from its valid tracks, either cycling
sequentially or shuffling without an immediate repeat. The only state is the
per-station selection history, which the caller owns and passes in.
"""

import random
from enum import Enum
from typing import Optional, Protocol

from loguru import logger

from wradio.domain.catalog.models import Station, Track

# station id -> index into that station's valid-track list
SelectionHistory = dict[str, int]


class SelectionMode(Enum):
    SHUFFLE = "shuffle"
    SEQUENTIAL = "sequential"


class RandomSource(Protocol):
    """Anything with ``random.Random.randrange`` semantics."""

    def randrange(self, stop: int) -> int: ...


class TrackSelector:
    """Chooses the next track for a station.

    Given the same station, mode, history and random source state, the
    result is always the same, so shuffle sequences are reproducible with a
    seeded ``random.Random``.
    """

    def __init__(self, rng: Optional[RandomSource] = None):
        self._rng = rng or random.Random()

    def select_next(
        self,
        station: Station,
        mode: SelectionMode,
        history: SelectionHistory,
    ) -> Optional[Track]:
        """Select the next track and record its index in ``history``.

        Args:
            station: Station to select from
            mode: Shuffle or sequential
            history: Per-station selection history, updated in place

        Returns:
            The selected track, or None if the station has no valid tracks
            (history is left untouched)
        """
        valid_tracks = station.valid_tracks
        if not valid_tracks:
            logger.debug(f"No valid tracks for station {station.id}")
            return None

        if mode is SelectionMode.SEQUENTIAL:
            index = self._next_sequential(station.id, len(valid_tracks), history)
        else:
            index = self._next_shuffled(station.id, len(valid_tracks), history)

        history[station.id] = index
        logger.debug(f"Selected track {index + 1}/{len(valid_tracks)} ({mode.value}) for {station.id}")
        return valid_tracks[index]

    @staticmethod
    def _next_sequential(station_id: str, count: int, history: SelectionHistory) -> int:
        last_index = history.get(station_id, -1)
        return (last_index + 1) % count

    def _next_shuffled(self, station_id: str, count: int, history: SelectionHistory) -> int:
        if count == 1:
            return 0

        last_index = history.get(station_id)
        index = self._rng.randrange(count)
        while index == last_index:
            index = self._rng.randrange(count)
        return index
