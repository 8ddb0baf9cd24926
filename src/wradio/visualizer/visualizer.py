"""
Scope and equalizer rendering.

Each frame picks one of three paths: live analyser data when the graph is
active, a synthetic animation driven by the playback position when audio
plays without a graph, and a slow idle wave while the radio is off or
paused.
"""

import asyncio
import math
from typing import TYPE_CHECKING, Optional

import numpy as np
from loguru import logger

from .drawing import (
    GRID_IDLE,
    GRID_LIVE,
    SCOPE_BACKGROUND_IDLE,
    SCOPE_BACKGROUND_LIVE,
    TRACE_IDLE,
    TRACE_LIVE,
    Clear,
    Color,
    DrawInstruction,
    FillRect,
    Frame,
    SetBarHeights,
    StrokePolyline,
    Surface,
)
from .scheduler import FrameScheduler

if TYPE_CHECKING:
    from wradio.domain.playback.controller import PlaybackController

IDLE_PHASE_STEP = 0.025
GRID_SPACING_LIVE = 24
GRID_SPACING_IDLE = 26

# Bar height bounds (percent)
LIVE_BAR_MIN = 8.0
SYNTHETIC_BAR_MIN = 10.0
BAR_MAX = 100.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def bucket_bar_heights(frequency: np.ndarray, bar_count: int) -> tuple[float, ...]:
    """Average contiguous frequency buckets into bar heights (percent)."""
    if bar_count <= 0:
        return ()
    bucket = len(frequency) // bar_count or 1
    heights = []
    for i in range(bar_count):
        chunk = frequency[i * bucket : (i + 1) * bucket]
        # Missing bins past the end count as zero
        average = float(np.sum(chunk, dtype=np.float64)) / bucket
        heights.append(_clamp(average / 255 * 100, LIVE_BAR_MIN, BAR_MAX))
    return tuple(heights)


class Visualizer:
    """Turns the controller's playback state into draw instructions."""

    def __init__(
        self,
        controller: "PlaybackController",
        bar_count: int = 20,
        width: int = 96,
        height: int = 48,
    ):
        self.controller = controller
        self.bar_count = bar_count
        self.width = width
        self.height = height
        self.phase = 0.0

    def render_frame(self, width: Optional[int] = None, height: Optional[int] = None) -> Frame:
        width = width or self.width
        height = height or self.height

        if not self.controller.is_playing:
            return self._draw_idle(width, height)

        pipeline = self.controller.pipeline
        waveform = pipeline.sample_waveform()
        frequency = pipeline.sample_frequency()
        if waveform is None or frequency is None:
            return self._draw_synthetic(width, height, pipeline.element.current_time or 0.0)
        return self._draw_live(width, height, waveform, frequency)

    async def run(
        self,
        scheduler: FrameScheduler,
        surface: Surface,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        """Paint a frame on every scheduler tick until ``stop`` is set."""
        logger.debug(f"Visualizer running with {self.bar_count} bars")
        while stop is None or not stop.is_set():
            surface.paint(self.render_frame(surface.width, surface.height))
            await scheduler.next_frame()

    def _draw_live(
        self, width: int, height: int, waveform: np.ndarray, frequency: np.ndarray
    ) -> Frame:
        instructions = self._background(width, height, SCOPE_BACKGROUND_LIVE, GRID_LIVE, GRID_SPACING_LIVE)

        step = len(waveform) / width
        indices = np.floor(np.arange(width) * step).astype(int)
        ys = waveform[indices].astype(np.float64) / 255 * height
        points = tuple((float(x), float(y)) for x, y in zip(range(width), ys))
        instructions.append(StrokePolyline(points, TRACE_LIVE, line_width=2))
        instructions.append(SetBarHeights(bucket_bar_heights(frequency, self.bar_count)))
        return Frame("live", instructions)

    def _draw_synthetic(self, width: int, height: int, t: float) -> Frame:
        instructions = self._background(width, height, SCOPE_BACKGROUND_LIVE, GRID_LIVE, GRID_SPACING_LIVE)

        mid = height / 2
        points = tuple(
            (float(x), mid + math.sin(x * 0.02 + t * 4.8) * 12 + math.sin(x * 0.008 + t * 1.8) * 7)
            for x in range(0, width + 1, 2)
        )
        instructions.append(StrokePolyline(points, TRACE_LIVE, line_width=2))

        heights = tuple(
            _clamp(
                30 + math.sin(t * 4 + i * 0.8) * 24 + math.sin(t * 1.6 + i) * 10,
                SYNTHETIC_BAR_MIN,
                BAR_MAX,
            )
            for i in range(self.bar_count)
        )
        instructions.append(SetBarHeights(heights))
        return Frame("synthetic", instructions)

    def _draw_idle(self, width: int, height: int) -> Frame:
        self.phase += IDLE_PHASE_STEP
        instructions = self._background(width, height, SCOPE_BACKGROUND_IDLE, GRID_IDLE, GRID_SPACING_IDLE)

        mid = height / 2
        points = tuple(
            (float(x), mid + math.sin(x * 0.015 + self.phase) * 8)
            for x in range(0, width + 1, 2)
        )
        instructions.append(StrokePolyline(points, TRACE_IDLE, line_width=2))

        heights = tuple(
            _clamp(14 + math.sin(self.phase + i * 0.7) * 6, SYNTHETIC_BAR_MIN, BAR_MAX)
            for i in range(self.bar_count)
        )
        instructions.append(SetBarHeights(heights))
        return Frame("idle", instructions)

    @staticmethod
    def _background(
        width: int, height: int, fill: Color, grid: Color, spacing: int
    ) -> list[DrawInstruction]:
        instructions: list[DrawInstruction] = [Clear(), FillRect(0, 0, width, height, fill)]
        for y in range(0, height, spacing):
            instructions.append(StrokePolyline(((0.0, float(y)), (float(width), float(y))), grid))
        return instructions
