"""Draw instructions emitted by the visualizer.

Surfaces turn these into pixels, terminal cells or anything else; the
visualizer never draws directly. Coordinates are surface units with the
origin top-left. Colours are ``(r, g, b, alpha)`` with alpha in ``[0, 1]``.
"""

from dataclasses import dataclass, field
from typing import Protocol, Union

Color = tuple[int, int, int, float]
Point = tuple[float, float]

SCOPE_BACKGROUND_LIVE: Color = (18, 39, 48, 0.88)
SCOPE_BACKGROUND_IDLE: Color = (24, 46, 56, 0.86)
GRID_LIVE: Color = (149, 206, 225, 0.18)
GRID_IDLE: Color = (149, 206, 225, 0.2)
TRACE_LIVE: Color = (239, 171, 112, 0.96)
TRACE_IDLE: Color = (239, 171, 112, 0.7)


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class FillRect:
    x: float
    y: float
    width: float
    height: float
    color: Color


@dataclass(frozen=True)
class StrokePolyline:
    points: tuple[Point, ...]
    color: Color
    line_width: float = 1.0


@dataclass(frozen=True)
class SetBarHeights:
    """Equalizer bar heights as percentages of the bar area."""

    heights: tuple[float, ...]


DrawInstruction = Union[Clear, FillRect, StrokePolyline, SetBarHeights]


@dataclass
class Frame:
    """Everything drawn for one display frame."""

    mode: str  # 'live' | 'synthetic' | 'idle'
    instructions: list[DrawInstruction] = field(default_factory=list)

    @property
    def bar_heights(self) -> tuple[float, ...]:
        for instruction in self.instructions:
            if isinstance(instruction, SetBarHeights):
                return instruction.heights
        return ()

    @property
    def traces(self) -> list[StrokePolyline]:
        """Polylines drawn thicker than the grid (the waveform)."""
        return [
            i for i in self.instructions
            if isinstance(i, StrokePolyline) and i.line_width > 1
        ]


class Surface(Protocol):
    """Something the visualizer can paint frames onto."""

    width: int
    height: int

    def paint(self, frame: Frame) -> None: ...
