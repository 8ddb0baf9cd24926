"""Tests for the playback controller state machine."""

import asyncio

import pytest

from conftest import FakeElement, make_controller, make_station, settle
from wradio.domain.exceptions import CatalogEmpty, PlaybackBlocked, PlaybackRuntimeFailure
from wradio.domain.playback.controller import (
    BLOCKED_HELPER,
    FALLBACK_HELPER,
    REPEATED_FAILURE_HELPER,
    ControllerState,
    max_skips_for,
)

JAZZ_1 = "https://radio.example/jazz/1.mp3"
JAZZ_2 = "https://radio.example/jazz/2.mp3"
ROCK_1 = "https://radio.example/rock/1.mp3"


class TestConstruction:
    def test_empty_catalog_rejected(self) -> None:
        with pytest.raises(CatalogEmpty):
            make_controller([])

    def test_initial_display(self, jazz, rock) -> None:
        controller = make_controller([jazz, rock], shuffle=True)

        assert controller.state is ControllerState.POWERED_OFF
        assert controller.display.status_text == "Ready: 2 stations loaded."
        assert controller.display.power_label == "Power On"
        assert controller.display.shuffle_label == "Shuffle: On"
        assert not controller.is_playing


class TestMaxSkips:
    @pytest.mark.parametrize("valid, expected", [(0, 2), (1, 2), (2, 2), (4, 4), (6, 6), (10, 6)])
    def test_bounds(self, valid, expected) -> None:
        urls = [f"https://radio.example/{i}.mp3" for i in range(valid)]
        assert max_skips_for(make_station("s", "S", *urls)) == expected


class TestPower:
    """Tests for powering on, pausing and resuming."""

    def test_power_on_goes_live(self, jazz, rock, element) -> None:
        controller = make_controller([jazz, rock], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.LIVE
        assert controller.session.is_powered_on
        assert controller.session.consecutive_errors == 0
        assert controller.display.status_text == "Live: Jazz"
        assert controller.display.status_mode == "live"
        assert controller.display.power_label == "Pause"
        assert controller.display.track_title == "Track 1"
        assert controller.display.track_meta == "Jazz Station"
        assert element.play_calls == [JAZZ_1]
        assert controller.is_playing

    def test_pause_then_resume_same_track(self, jazz, element) -> None:
        """Powering back on resumes the paused track without reselecting."""
        controller = make_controller([jazz], element)

        async def run() -> None:
            await controller.toggle_power()
            await controller.toggle_power()
            assert controller.state is ControllerState.POWERED_OFF
            assert controller.display.status_text == "Paused."
            assert controller.display.power_label == "Power On"
            assert element.paused

            await controller.toggle_power()

        asyncio.run(run())
        assert controller.state is ControllerState.LIVE
        assert element.play_calls == [JAZZ_1, JAZZ_1]
        assert controller.history == {"jazz": 0}

    def test_blocked_start_powers_off(self, jazz, element) -> None:
        """A refused start stops without retrying another track."""
        element.fail(JAZZ_1, PlaybackBlocked("refused"), PlaybackBlocked("refused"))
        controller = make_controller([jazz], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.POWERED_OFF
        assert not controller.session.is_powered_on
        assert controller.display.status_text == "Click Power On to start audio."
        assert controller.display.status_mode == "warn"
        assert controller.display.helper_text == BLOCKED_HELPER
        assert controller.session.consecutive_errors == 0
        # One attempt through the graph, one direct
        assert element.play_calls == [JAZZ_1, JAZZ_1]

    def test_refused_resume(self, jazz, element) -> None:
        controller = make_controller([jazz], element)

        async def run() -> None:
            await controller.toggle_power()
            await controller.toggle_power()
            element.fail(JAZZ_1, PlaybackBlocked("device gone"))
            await controller.toggle_power()

        asyncio.run(run())
        assert controller.state is ControllerState.POWERED_OFF
        assert controller.display.status_text == "Unable to start playback."

    def test_player_connection_error_powers_off(self, jazz, element) -> None:
        """Socket and device errors end the start instead of leaving it pending."""
        element.fail(JAZZ_1, ConnectionRefusedError("mpv socket refused"))
        controller = make_controller([jazz], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.POWERED_OFF
        assert not controller.session.is_powered_on
        assert controller.display.status_text == "Click Power On to start audio."

    def test_connection_error_on_advance_powers_off(self, jazz, element) -> None:
        controller = make_controller([jazz], element)

        async def run() -> None:
            await controller.toggle_power()
            element.fail(JAZZ_2, OSError("output device lost"))
            element._emit_ended()
            await controller.wait_idle()

        asyncio.run(run())
        assert controller.state is ControllerState.POWERED_OFF
        assert controller.display.power_label == "Power On"

    def test_fallback_helper_shown(self, jazz) -> None:
        element = FakeElement(block_with_graph=True)
        controller = make_controller([jazz], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.LIVE
        assert controller.display.helper_text == FALLBACK_HELPER


class TestFailureRecovery:
    """Tests for bounded skipping after playback failures."""

    def test_start_failures_give_up_after_max_skips(self, jazz, element) -> None:
        """Two tracks that both fail end powered off after two attempts."""
        element.fail(JAZZ_1, *[PlaybackRuntimeFailure(JAZZ_1, "404")] * 2)
        element.fail(JAZZ_2, *[PlaybackRuntimeFailure(JAZZ_2, "404")] * 2)
        controller = make_controller([jazz], element)

        async def run() -> None:
            await controller.toggle_power()
            await controller.wait_idle()

        asyncio.run(run())
        # Each track is tried through the graph and then directly
        assert element.play_calls == [JAZZ_1, JAZZ_1, JAZZ_2, JAZZ_2]
        assert controller.state is ControllerState.POWERED_OFF
        assert not controller.session.is_powered_on
        assert controller.session.consecutive_errors == 2
        assert controller.display.status_text == "Playback failed repeatedly for this station."
        assert controller.display.helper_text == REPEATED_FAILURE_HELPER
        assert element.closed

    def test_failure_then_success_resets_counter(self, rock, element) -> None:
        element.fail(ROCK_1, *[PlaybackRuntimeFailure(ROCK_1, "404")] * 2)
        controller = make_controller([rock], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.LIVE
        assert controller.session.consecutive_errors == 0
        assert element.play_calls == [ROCK_1, ROCK_1, "https://radio.example/rock/2.mp3"]

    def test_graph_path_failure_recovered_directly(self, rock, element) -> None:
        """A single failure through the graph is retried on the same track."""
        element.fail(ROCK_1, PlaybackRuntimeFailure(ROCK_1, "graph path failed"))
        controller = make_controller([rock], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.LIVE
        assert controller.session.consecutive_errors == 0
        assert controller.display.helper_text == FALLBACK_HELPER
        assert element.play_calls == [ROCK_1, ROCK_1]

    def test_error_event_while_live_skips(self, rock, element) -> None:
        """A failure reported during playback moves on to the next track."""
        controller = make_controller([rock], element)

        async def run() -> None:
            await controller.toggle_power()
            element._emit_error("decode error")
            await controller.wait_idle()

        asyncio.run(run())
        assert controller.state is ControllerState.LIVE
        assert controller.session.consecutive_errors == 0
        assert element.play_calls == [ROCK_1, "https://radio.example/rock/2.mp3"]

    def test_scanning_status_while_retrying(self, rock, element) -> None:
        controller = make_controller([rock], element)

        async def run() -> None:
            await controller.toggle_power()
            element.gate = asyncio.Event()
            element._emit_error("decode error")
            await settle()
            assert controller.display.status_text == "Track failed to play. Scanning next..."
            assert controller.display.status_mode == "warn"
            assert controller.state is ControllerState.STARTING

            element.gate.set()
            await controller.wait_idle()

        asyncio.run(run())
        assert controller.display.status_text == "Live: Rock"

    def test_error_events_are_bounded(self, jazz, element) -> None:
        """Errors after each successful start still count toward the limit."""
        controller = make_controller([jazz], element)
        element.fail(JAZZ_2, *[PlaybackRuntimeFailure(JAZZ_2, "404")] * 2)

        async def run() -> None:
            await controller.toggle_power()
            element._emit_error("stalled")
            await controller.wait_idle()

        asyncio.run(run())
        assert controller.state is ControllerState.POWERED_OFF
        assert controller.display.status_text == "Playback failed repeatedly for this station."

    def test_error_event_while_off_is_ignored(self, jazz, element) -> None:
        controller = make_controller([jazz], element)

        async def run() -> None:
            element._emit_error("late")
            await controller.wait_idle()

        asyncio.run(run())
        assert controller.session.consecutive_errors == 0
        assert element.play_calls == []


class TestAdvance:
    def test_natural_end_plays_next(self, jazz, element) -> None:
        controller = make_controller([jazz], element)

        async def run() -> None:
            await controller.toggle_power()
            element._emit_ended()
            await controller.wait_idle()

        asyncio.run(run())
        assert element.play_calls == [JAZZ_1, JAZZ_2]
        assert controller.state is ControllerState.LIVE

    def test_next_track_while_off_starts(self, jazz, element) -> None:
        controller = make_controller([jazz], element)
        asyncio.run(controller.next_track())
        assert controller.state is ControllerState.LIVE

    def test_toggle_shuffle(self, jazz) -> None:
        controller = make_controller([jazz], shuffle=False)
        assert controller.display.shuffle_label == "Shuffle: Off"
        controller.toggle_shuffle()
        assert controller.session.is_shuffle
        assert controller.display.shuffle_label == "Shuffle: On"


class TestNavigation:
    """Tests for station changes."""

    def test_set_station_while_off_never_plays(self, jazz, rock, element) -> None:
        controller = make_controller([jazz, rock], element)

        asyncio.run(controller.set_station(1))

        assert controller.session.station_index == 1
        assert controller.display.track_meta == "Rock selected. Press Power On."
        assert controller.state is ControllerState.POWERED_OFF
        assert element.play_calls == []

    def test_set_station_clamps(self, jazz, rock) -> None:
        controller = make_controller([jazz, rock])
        asyncio.run(controller.set_station(99))
        assert controller.session.station_index == 1
        asyncio.run(controller.set_station(-5))
        assert controller.session.station_index == 0

    def test_set_station_while_on_plays_new_station(self, jazz, rock, element) -> None:
        controller = make_controller([jazz, rock], element)

        async def run() -> None:
            await controller.toggle_power()
            await controller.set_station(1)

        asyncio.run(run())
        assert element.play_calls == [JAZZ_1, ROCK_1]
        assert controller.display.status_text == "Live: Rock"

    def test_station_without_valid_tracks(self, empty_station, jazz, element) -> None:
        controller = make_controller([empty_station, jazz], element)

        asyncio.run(controller.toggle_power())

        assert controller.state is ControllerState.POWERED_OFF
        assert controller.display.status_text == "No valid tracks in this station."
        assert controller.display.track_title == "-"
        assert controller.display.track_meta == "Void has no valid URLs yet."
        assert controller.session.consecutive_errors == 0
        assert element.play_calls == []

    def test_tuning_to_empty_station_while_live(self, jazz, empty_station, element) -> None:
        """The current track keeps playing when the new station has nothing valid."""
        controller = make_controller([jazz, empty_station], element)

        async def run() -> None:
            await controller.toggle_power()
            await controller.set_station(1)

        asyncio.run(run())
        assert controller.state is ControllerState.LIVE
        assert controller.display.status_text == "No valid tracks in this station."
        assert not element.paused


class TestConcurrency:
    """Tests for superseded start attempts."""

    def test_power_off_during_start_discards_late_success(self, jazz, element) -> None:
        element.gate = asyncio.Event()
        controller = make_controller([jazz], element)

        async def run() -> None:
            start = asyncio.create_task(controller.toggle_power())
            await settle()
            assert controller.state is ControllerState.STARTING

            await controller.toggle_power()
            assert controller.state is ControllerState.POWERED_OFF

            element.gate.set()
            await start

        asyncio.run(run())
        assert controller.state is ControllerState.POWERED_OFF
        assert not controller.session.is_powered_on
        assert controller.display.status_text == "Paused."
        assert element.paused

    def test_request_during_start_is_queued(self, jazz, rock, element) -> None:
        """A station change while starting runs after the pending attempt."""
        element.gate = asyncio.Event()
        controller = make_controller([jazz, rock], element)

        async def run() -> None:
            start = asyncio.create_task(controller.toggle_power())
            await settle()

            await controller.set_station(1)
            assert element.play_calls == [JAZZ_1]

            element.gate.set()
            await start

        asyncio.run(run())
        assert element.play_calls == [JAZZ_1, ROCK_1]
        assert controller.state is ControllerState.LIVE
        assert controller.display.status_text == "Live: Rock"

    def test_latest_queued_request_wins(self, jazz, rock, empty_station, element) -> None:
        element.gate = asyncio.Event()
        controller = make_controller([jazz, empty_station, rock], element)

        async def run() -> None:
            start = asyncio.create_task(controller.toggle_power())
            await settle()
            await controller.set_station(1)
            await controller.set_station(2)
            element.gate.set()
            await start

        asyncio.run(run())
        assert element.play_calls == [JAZZ_1, ROCK_1]
        assert controller.display.status_text == "Live: Rock"


class TestDials:
    def test_volume_and_tone_clamped(self, jazz) -> None:
        controller = make_controller([jazz])
        controller.set_volume(140)
        assert controller.pipeline.volume == 100
        controller.set_tone(-20)
        assert controller.pipeline.tone == 0
