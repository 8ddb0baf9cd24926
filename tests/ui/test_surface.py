"""Tests for terminal rendering of visualizer frames."""

import numpy as np
from blessed import Terminal

from wradio.ui.blessed.surface import BAR_BLOCKS, TerminalSurface, bar_rows, blend, rasterize
from wradio.visualizer.drawing import Clear, FillRect, Frame, SetBarHeights, StrokePolyline


class TestRasterize:
    def test_fill_and_stroke(self) -> None:
        frame = Frame(
            "idle",
            [
                Clear(),
                FillRect(0, 0, 8, 4, (100, 100, 100, 0.5)),
                StrokePolyline(((0.0, 2.0), (7.0, 2.0)), (200, 0, 0, 1.0), line_width=2),
            ],
        )
        pixels = rasterize(frame, 8, 4)

        assert pixels.shape == (4, 8, 3)
        assert pixels[0, 0].tolist() == [50, 50, 50]
        assert pixels[2].tolist() == [[200, 0, 0]] * 8

    def test_points_outside_are_clipped(self) -> None:
        frame = Frame("live", [StrokePolyline(((-5.0, -5.0), (20.0, 20.0)), (255, 255, 255, 1.0))])
        pixels = rasterize(frame, 4, 4)
        assert [pixels[i, i].tolist() for i in range(4)] == [[255, 255, 255]] * 4

    def test_blend(self) -> None:
        assert blend((239, 171, 112, 0.0)) == (0, 0, 0)
        assert blend((10, 20, 30, 1.0)) == (10, 20, 30)


class TestBarRows:
    def test_full_and_empty_bars(self) -> None:
        lines = bar_rows((100.0, 0.0), rows=2)
        full, empty = BAR_BLOCKS[-1] * 2, BAR_BLOCKS[0] * 2
        assert lines == [f"{full} {empty}", f"{full} {empty}"]

    def test_partial_bar(self) -> None:
        lines = bar_rows((50.0,), rows=2)
        assert lines[0] == BAR_BLOCKS[0] * 2
        assert lines[1] == BAR_BLOCKS[-1] * 2


class TestTerminalSurface:
    def test_paint_draws_every_cell(self, capsys) -> None:
        term = Terminal(force_styling=None)
        surface = TerminalSurface(term, columns=10, rows=3, bar_rows=2)
        frame = Frame("idle", [Clear(), SetBarHeights((100.0, 100.0))])

        surface.paint(frame)

        out = capsys.readouterr().out
        assert out.count("▀") == 30
        assert out.count(BAR_BLOCKS[-1]) == 8
        assert surface.last_frame is frame
        assert (surface.width, surface.height) == (10, 6)
