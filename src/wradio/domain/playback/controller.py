"""
Playback controller - the radio's top-level state machine.

Owns the session (current station, power state, error counter), turns user
commands and element events into state transitions, and re-invokes the
selector and pipeline to recover from failures.

Transitions run one at a time on the event loop. A start request that
arrives while another start is pending is queued and supersedes it; every
attempt carries a token so a late completion of a superseded attempt cannot
change the session.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from wradio.domain.catalog.models import Station, Track
from wradio.domain.radio.selector import SelectionHistory, SelectionMode, TrackSelector

from ..exceptions import (
    CatalogEmpty,
    NoValidTracks,
    PlaybackBlocked,
    PlaybackRuntimeFailure,
)
from .pipeline import AudioPipeline

MIN_SKIPS = 2
MAX_SKIPS = 6

FALLBACK_HELPER = "Audio graph unavailable for this track source. Using fallback visuals."
BLOCKED_HELPER = "Playback was blocked. Press Power On again."
REPEATED_FAILURE_HELPER = (
    "Tracks are reachable, so this is likely a playback/cross-origin restriction. "
    "Try another station or restart."
)


class ControllerState(Enum):
    POWERED_OFF = "powered_off"
    STARTING = "starting"
    LIVE = "live"
    RECOVERING_ERROR = "recovering_error"


class StartKind(Enum):
    SELECT = "select"  # pick a track from the current station
    RESUME = "resume"  # continue the paused current track


@dataclass
class PlaybackSession:
    station_index: int = 0
    current_track: Optional[Track] = None
    is_shuffle: bool = True
    is_powered_on: bool = False
    consecutive_errors: int = 0

    @property
    def mode(self) -> SelectionMode:
        return SelectionMode.SHUFFLE if self.is_shuffle else SelectionMode.SEQUENTIAL


@dataclass
class NowPlayingDisplay:
    """Text shown by the front end; written only by the controller."""

    status_text: str = "Idle."
    status_mode: str = "idle"  # 'idle' | 'live' | 'warn'
    helper_text: str = ""
    track_title: str = "-"
    track_meta: str = ""
    power_label: str = "Power On"
    shuffle_label: str = "Shuffle: On"


def max_skips_for(station: Station) -> int:
    """Consecutive failures tolerated on a station before giving up."""
    valid_count = len(station.valid_tracks) or MIN_SKIPS
    return max(MIN_SKIPS, min(MAX_SKIPS, valid_count))


class PlaybackController:
    """Drives power, station changes, auto-advance and failure recovery."""

    def __init__(
        self,
        stations: Sequence[Station],
        selector: TrackSelector,
        pipeline: AudioPipeline,
        shuffle: bool = True,
    ):
        if not stations:
            raise CatalogEmpty()

        self.stations = list(stations)
        self.selector = selector
        self.pipeline = pipeline
        self.session = PlaybackSession(is_shuffle=shuffle)
        self.history: SelectionHistory = {}
        self.state = ControllerState.POWERED_OFF
        self.display = NowPlayingDisplay(shuffle_label=self._shuffle_label())

        self._attempt = 0
        self._starting = False
        self._queued: Optional[StartKind] = None
        self._tasks: set[asyncio.Task] = set()

        pipeline.element.on_ended = self._on_track_ended
        pipeline.element.on_error = self._on_playback_error

        self._set_status(f"Ready: {len(self.stations)} stations loaded.")
        self.display.helper_text = "Press Power On to start Wradio."

    @property
    def current_station(self) -> Station:
        return self.stations[self.session.station_index]

    @property
    def is_playing(self) -> bool:
        return self.session.is_powered_on and not self.pipeline.element.paused

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------

    async def toggle_power(self) -> None:
        """Pause when on; resume or start when off."""
        if self.state is not ControllerState.POWERED_OFF:
            self._power_off("Paused.")
            return
        if self.session.current_track is None:
            await self._request_start(StartKind.SELECT)
        else:
            await self._request_start(StartKind.RESUME)

    async def next_track(self) -> None:
        """Skip to a newly selected track on the current station."""
        await self._request_start(StartKind.SELECT)

    def toggle_shuffle(self) -> None:
        self.session.is_shuffle = not self.session.is_shuffle
        self.display.shuffle_label = self._shuffle_label()
        logger.info(f"Selection mode: {self.session.mode.value}")

    async def set_station(self, index: int) -> None:
        """Tune to a station; only starts playback if the radio is on."""
        self._select_station(index)
        station = self.current_station
        if self.state is ControllerState.POWERED_OFF:
            self.display.track_meta = f"{station.name} selected. Press Power On."
            return
        await self._request_start(StartKind.SELECT)

    def preview_station(self, index: int) -> None:
        """Move the selection without touching playback (dial drag)."""
        self._select_station(index)

    def set_volume(self, pct: int) -> None:
        self.pipeline.set_volume(min(max(int(pct), 0), 100))

    def set_tone(self, pct: int) -> None:
        self.pipeline.set_tone(min(max(int(pct), 0), 100))

    async def wait_idle(self) -> None:
        """Wait for transitions triggered by element events to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._attempt += 1
        for task in list(self._tasks):
            task.cancel()
        await self.pipeline.stop()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _request_start(self, kind: StartKind) -> None:
        if self._starting:
            logger.debug(f"Start pending; queueing {kind.value}")
            self._queued = kind
            self._attempt += 1
            return

        self._starting = True
        try:
            next_kind: Optional[StartKind] = kind
            while next_kind is not None:
                retry = await self._attempt_start(next_kind)
                next_kind, self._queued = self._queued, None
                if next_kind is None and retry:
                    next_kind = StartKind.SELECT
        finally:
            self._starting = False

    async def _attempt_start(self, kind: StartKind) -> bool:
        """Run one start attempt.

        Returns:
            True if a runtime failure should be retried with a new track
        """
        self._attempt += 1
        token = self._attempt
        self.state = ControllerState.STARTING
        station = self.current_station

        try:
            if kind is StartKind.RESUME:
                await self.pipeline.resume()
                outcome = None
            else:
                track = self._select_track(station)
                self.session.current_track = track
                self.display.track_title = track.display_title
                self.display.track_meta = f"{station.name} Station"
                logger.info(f"Tuning {station.name}: {track.display_title} ({track.url})")
                outcome = await self.pipeline.play(track)
        except NoValidTracks:
            self._no_valid_tracks(station)
            return False
        except (PlaybackBlocked, OSError) as e:
            # OSError covers output devices and player IPC sockets
            if self._is_stale(token):
                return False
            self._blocked(kind, e)
            return False
        except PlaybackRuntimeFailure as failure:
            if self._is_stale(token):
                return False
            return self._register_failure(failure)

        if self._is_stale(token):
            self._discard_stale()
            return False

        self.session.consecutive_errors = 0
        self.session.is_powered_on = True
        self.state = ControllerState.LIVE
        self.display.power_label = "Pause"
        self.display.helper_text = (
            FALLBACK_HELPER if outcome and outcome.retried_without_graph else ""
        )
        self._set_status(f"Live: {station.name}", "live")
        return False

    def _register_failure(self, failure: PlaybackRuntimeFailure) -> bool:
        """Count a playback failure and decide whether to skip ahead.

        Returns:
            True if another track should be tried
        """
        self.state = ControllerState.RECOVERING_ERROR
        self.session.consecutive_errors += 1
        max_skips = max_skips_for(self.current_station)
        logger.warning(
            f"Playback failure {self.session.consecutive_errors}/{max_skips}: {failure}"
        )

        if self.session.consecutive_errors >= max_skips:
            self._attempt += 1
            self.pipeline.pause()
            self._task(self.pipeline.stop())
            self.session.is_powered_on = False
            self.state = ControllerState.POWERED_OFF
            self.display.power_label = "Power On"
            self._set_status("Playback failed repeatedly for this station.", "warn")
            self.display.helper_text = REPEATED_FAILURE_HELPER
            return False

        self._set_status("Track failed to play. Scanning next...", "warn")
        return True

    def _blocked(self, kind: StartKind, error: Exception) -> None:
        logger.warning(f"Playback blocked: {error}")
        self.session.is_powered_on = False
        self.state = ControllerState.POWERED_OFF
        self.display.power_label = "Power On"
        if kind is StartKind.RESUME:
            self._set_status("Unable to start playback.", "warn")
        else:
            self._set_status("Click Power On to start audio.", "warn")
            self.display.helper_text = BLOCKED_HELPER

    def _no_valid_tracks(self, station: Station) -> None:
        logger.warning(f"No valid tracks in station {station.id}")
        # Whatever was already playing keeps playing
        if self.session.is_powered_on:
            self.state = ControllerState.LIVE
        else:
            self.state = ControllerState.POWERED_OFF
            self.display.power_label = "Power On"
        self.display.track_title = "-"
        self.display.track_meta = f"{station.name} has no valid URLs yet."
        self._set_status("No valid tracks in this station.", "warn")

    def _power_off(self, status: str) -> None:
        self._attempt += 1
        self._queued = None
        self.pipeline.pause()
        self.session.is_powered_on = False
        self.state = ControllerState.POWERED_OFF
        self.display.power_label = "Power On"
        self._set_status(status)

    def _is_stale(self, token: int) -> bool:
        return token != self._attempt

    def _discard_stale(self) -> None:
        logger.debug("Discarding superseded start attempt")
        if self.state is ControllerState.POWERED_OFF:
            self.pipeline.pause()

    # ------------------------------------------------------------------
    # Element events
    # ------------------------------------------------------------------

    def _on_track_ended(self) -> None:
        if self.state is not ControllerState.LIVE:
            return
        logger.info("Track ended; advancing")
        self._task(self._request_start(StartKind.SELECT))

    def _on_playback_error(self, failure: PlaybackRuntimeFailure) -> None:
        if self.state is not ControllerState.LIVE:
            return
        self._task(self._recover(failure))

    async def _recover(self, failure: PlaybackRuntimeFailure) -> None:
        if self._register_failure(failure):
            await self._request_start(StartKind.SELECT)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _select_track(self, station: Station) -> Track:
        track = self.selector.select_next(station, self.session.mode, self.history)
        if track is None:
            raise NoValidTracks(station.name)
        return track

    def _select_station(self, index: int) -> None:
        clamped = max(0, min(len(self.stations) - 1, int(index)))
        if clamped != self.session.station_index:
            logger.info(f"Station {clamped}: {self.stations[clamped].name}")
        self.session.station_index = clamped

    def _set_status(self, text: str, mode: str = "idle") -> None:
        self.display.status_text = text
        self.display.status_mode = mode
        logger.info(f"Status: {text}")

    def _shuffle_label(self) -> str:
        return f"Shuffle: {'On' if self.session.is_shuffle else 'Off'}"

    def _task(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
