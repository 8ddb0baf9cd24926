"""Shared fixtures and fakes for Wradio tests."""

import asyncio
import random
from typing import Optional

import pytest

from wradio.domain.catalog.models import Station, Track
from wradio.domain.exceptions import GraphConstructionFailed, PlaybackBlocked
from wradio.domain.playback.controller import PlaybackController
from wradio.domain.playback.element import MediaElement
from wradio.domain.playback.pipeline import AudioPipeline
from wradio.domain.radio.selector import TrackSelector


class FakeElement(MediaElement):
    """In-memory playback element.

    ``fail(url, *errors)`` queues exceptions raised by successive ``play()``
    calls for that URL. With ``block_with_graph`` set, playing while a graph
    has captured the output raises PlaybackBlocked.
    """

    def __init__(self, capture: bool = True, block_with_graph: bool = False):
        super().__init__()
        self.capture = capture
        self.block_with_graph = block_with_graph
        self.errors: dict[str, list[Exception]] = {}
        self.play_calls: list[Optional[str]] = []
        self.pause_calls = 0
        self.gate: Optional[asyncio.Event] = None
        self.render = None
        self.time = 0.0
        self.closed = False

    @property
    def current_time(self) -> float:
        return self.time

    def fail(self, url: str, *errors: Exception) -> None:
        self.errors.setdefault(url, []).extend(errors)

    async def play(self) -> None:
        self.play_calls.append(self.src)
        if self.gate is not None:
            await self.gate.wait()
        if self.block_with_graph and self.render is not None:
            raise PlaybackBlocked("graph output refused")
        pending = self.errors.get(self.src or "")
        if pending:
            raise pending.pop(0)
        self.paused = False

    def pause(self) -> None:
        self.pause_calls += 1
        self.paused = True

    async def close(self) -> None:
        self.closed = True

    def capture_output(self, render, sample_rate: int) -> None:
        if not self.capture:
            raise GraphConstructionFailed("cross-origin source")
        self.render = render

    def release_output(self) -> None:
        self.render = None


def make_station(station_id: str, name: str, *urls: str) -> Station:
    return Station(
        id=station_id,
        name=name,
        tracks=tuple(Track(url=url, title=f"Track {i + 1}") for i, url in enumerate(urls)),
    )


def make_controller(
    stations: list[Station],
    element: Optional[FakeElement] = None,
    shuffle: bool = False,
    seed: int = 0,
) -> PlaybackController:
    pipeline = AudioPipeline(element or FakeElement())
    return PlaybackController(
        stations, TrackSelector(random.Random(seed)), pipeline, shuffle=shuffle
    )


async def settle(iterations: int = 10) -> None:
    """Let pending tasks on the loop run."""
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def jazz() -> Station:
    return make_station(
        "jazz",
        "Jazz",
        "https://radio.example/jazz/1.mp3",
        "https://radio.example/jazz/2.mp3",
    )


@pytest.fixture
def rock() -> Station:
    return make_station(
        "rock",
        "Rock",
        "https://radio.example/rock/1.mp3",
        "https://radio.example/rock/2.mp3",
        "https://radio.example/rock/3.mp3",
    )


@pytest.fixture
def empty_station() -> Station:
    return make_station("void", "Void", "", "file:///music/a.mp3", "/relative.mp3")


@pytest.fixture
def element() -> FakeElement:
    return FakeElement()
