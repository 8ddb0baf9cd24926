"""Terminal rendering surface for the visualizer.

The scope is rasterized onto a cell grid where every terminal row holds two
vertical pixels (upper half block with separate foreground and background
colours). Equalizer bars are drawn underneath as block columns.
"""

import sys
from typing import Optional

import numpy as np
from blessed import Terminal

from wradio.visualizer.drawing import (
    Clear,
    Color,
    FillRect,
    Frame,
    StrokePolyline,
)

UPPER_HALF = "▀"
BAR_BLOCKS = " ▁▂▃▄▅▆▇█"
BAR_COLOR = (239, 171, 112)


def blend(color: Color) -> tuple[int, int, int]:
    """Flatten an RGBA colour over a black terminal background."""
    r, g, b, alpha = color
    return (round(r * alpha), round(g * alpha), round(b * alpha))


def _line_points(x0: float, y0: float, x1: float, y1: float) -> list[tuple[int, int]]:
    steps = int(max(abs(x1 - x0), abs(y1 - y0))) + 1
    xs = np.linspace(x0, x1, steps + 1)
    ys = np.linspace(y0, y1, steps + 1)
    return list(zip(np.round(xs).astype(int), np.round(ys).astype(int)))


def rasterize(frame: Frame, width: int, height: int) -> np.ndarray:
    """Paint a frame's scope instructions into an RGB pixel array.

    Returns:
        uint8 array shaped (height, width, 3)
    """
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    for instruction in frame.instructions:
        if isinstance(instruction, Clear):
            pixels[:] = 0
        elif isinstance(instruction, FillRect):
            x0, y0 = max(int(instruction.x), 0), max(int(instruction.y), 0)
            x1 = min(int(instruction.x + instruction.width), width)
            y1 = min(int(instruction.y + instruction.height), height)
            pixels[y0:y1, x0:x1] = blend(instruction.color)
        elif isinstance(instruction, StrokePolyline):
            color = blend(instruction.color)
            points = instruction.points
            for (ax, ay), (bx, by) in zip(points, points[1:]):
                for x, y in _line_points(ax, ay, bx, by):
                    if 0 <= x < width and 0 <= y < height:
                        pixels[y, x] = color
    return pixels


def bar_rows(heights: tuple[float, ...], rows: int) -> list[str]:
    """Render bar heights (percent) as ``rows`` lines of block characters."""
    levels = len(BAR_BLOCKS) - 1
    lines = []
    for row in range(rows):
        # Rows counted from the bottom
        floor = rows - 1 - row
        line = []
        for pct in heights:
            filled = pct / 100 * rows - floor
            index = int(min(max(filled, 0.0), 1.0) * levels)
            line.append(BAR_BLOCKS[index] * 2)
        lines.append(" ".join(line))
    return lines


class TerminalSurface:
    """Paints visualizer frames at a fixed position on a blessed terminal."""

    def __init__(self, term: Terminal, x: int = 0, y: int = 0, columns: int = 96, rows: int = 24, bar_rows: int = 6):
        self.term = term
        self.x = x
        self.y = y
        self.columns = columns
        self.rows = rows
        self.bar_row_count = bar_rows
        self.last_frame: Optional[Frame] = None

    @property
    def width(self) -> int:
        return self.columns

    @property
    def height(self) -> int:
        return self.rows * 2

    def paint(self, frame: Frame) -> None:
        self.last_frame = frame
        pixels = rasterize(frame, self.width, self.height)
        out = []
        for row in range(self.rows):
            out.append(self.term.move_xy(self.x, self.y + row) + self._cells(pixels[2 * row], pixels[2 * row + 1]))

        bar_color = self.term.color_rgb(*BAR_COLOR)
        for offset, line in enumerate(bar_rows(frame.bar_heights, self.bar_row_count)):
            out.append(
                self.term.move_xy(self.x, self.y + self.rows + 1 + offset)
                + self.term.clear_eol
                + bar_color
                + line
                + self.term.normal
            )
        sys.stdout.write("".join(out))
        sys.stdout.flush()

    def _cells(self, upper: np.ndarray, lower: np.ndarray) -> str:
        term = self.term
        cells = []
        for top, bottom in zip(upper, lower):
            cells.append(term.color_rgb(*map(int, top)) + term.on_color_rgb(*map(int, bottom)) + UPPER_HALF)
        return "".join(cells) + term.normal
