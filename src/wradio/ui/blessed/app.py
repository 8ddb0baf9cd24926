"""Main event loop and entry point for the blessed radio UI."""

import asyncio
import sys
from typing import Coroutine, Optional

from blessed import Terminal
from loguru import logger

from wradio.core.config import Config
from wradio.core.output import drain_pending_messages, log, set_fullscreen_mode
from wradio.domain.playback.controller import PlaybackController
from wradio.domain.radio.dial import StationDial
from wradio.visualizer import Frame, RealtimeScheduler, Visualizer

from .keys import RadioCommand, handle_key
from .surface import TerminalSurface

KEY_POLL_INTERVAL = 0.02
HEADER_ROWS = 6
BAR_ROWS = 6
MESSAGE_ROWS = 2

STATUS_STYLES = {"idle": "bright_black", "live": "bold_green", "warn": "bold_yellow"}


def write_at(term: Terminal, x: int, y: int, content: str) -> None:
    """Write content at position, clearing the rest of the line."""
    sys.stdout.write(term.move_xy(x, y) + term.clear_eol + content)


class RadioApp:
    """Binds the controller, dial and visualizer to one terminal."""

    def __init__(
        self,
        term: Terminal,
        controller: PlaybackController,
        dial: StationDial,
        visualizer: Visualizer,
        fps: int = 30,
    ):
        self.term = term
        self.controller = controller
        self.dial = dial
        self.visualizer = visualizer
        self.scheduler = RealtimeScheduler(fps)
        self.stop = asyncio.Event()
        self.messages: list[tuple[str, str]] = []
        self._tasks: set[asyncio.Task] = set()

        rows = max(4, min(visualizer.height // 2, term.height - HEADER_ROWS - BAR_ROWS - MESSAGE_ROWS - 2))
        columns = max(8, min(visualizer.width, term.width))
        self.surface = TerminalSurface(term, 0, HEADER_ROWS, columns, rows, bar_rows=BAR_ROWS)

    async def run(self) -> None:
        render_task = asyncio.create_task(self.visualizer.run(self.scheduler, self, self.stop))
        try:
            while not self.stop.is_set():
                key = self.term.inkey(timeout=0)
                if key:
                    command = handle_key(key)
                    if command:
                        self.execute(command)
                await asyncio.sleep(KEY_POLL_INTERVAL)
        finally:
            self.stop.set()
            await render_task
            for task in list(self._tasks):
                task.cancel()
            await self.controller.close()

    def execute(self, command: RadioCommand) -> None:
        controller = self.controller
        logger.debug(f"Command: {command.action} {command.data}")

        if command.action == "quit":
            self.stop.set()
        elif command.action == "power":
            self._spawn(controller.toggle_power())
        elif command.action == "next":
            self._spawn(controller.next_track())
        elif command.action == "shuffle":
            controller.toggle_shuffle()
        elif command.action == "dial":
            if not self.dial.animating:
                self.dial.nudge(command.data["step"])
        elif command.action == "tune":
            index = command.data.get("index", self.dial.nearest)
            if index < len(controller.stations):
                self._spawn(self.dial.snap_to(index))
        elif command.action == "volume":
            controller.set_volume(controller.pipeline.volume + command.data["delta"])
        elif command.action == "tone":
            controller.set_tone(controller.pipeline.tone + command.data["delta"])

    @property
    def width(self) -> int:
        return self.surface.width

    @property
    def height(self) -> int:
        return self.surface.height

    def paint(self, frame: Frame) -> None:
        """Draw one full screen: header, scope and bars, then footer."""
        self.messages = (self.messages + drain_pending_messages())[-MESSAGE_ROWS:]
        self._draw_header()
        self.surface.paint(frame)
        self._draw_footer()

    def _draw_header(self) -> None:
        term = self.term
        display = self.controller.display
        station = self.controller.current_station
        status_style = getattr(term, STATUS_STYLES.get(display.status_mode, "normal"))

        write_at(term, 0, 0, term.bold(f"WRADIO  {station.name}") + term.bright_black(f"  [{self.dial.nearest + 1}/{len(self.controller.stations)}]"))
        write_at(term, 0, 1, status_style(display.status_text))
        write_at(term, 0, 2, term.bright_black(display.helper_text))
        write_at(term, 0, 3, term.bold(display.track_title) + "  " + term.bright_black(display.track_meta))
        pipeline = self.controller.pipeline
        write_at(
            term,
            0,
            4,
            f"[{display.power_label}]  [{display.shuffle_label}]  "
            f"Volume {pipeline.volume}%  Tone {pipeline.tone}%",
        )
        write_at(term, 0, 5, self._dial_line())

    def _dial_line(self) -> str:
        count = len(self.controller.stations)
        slots = max(count, 1)
        width = max(self.surface.columns - 2, slots)
        position = 0 if count <= 1 else round(self.dial.value / (count - 1) * (width - 1))
        track = ["─"] * width
        track[min(position, width - 1)] = "◆"
        return "│" + "".join(track) + "│"

    def _draw_footer(self) -> None:
        term = self.term
        top = self.surface.y + self.surface.rows + BAR_ROWS + 2
        for offset in range(MESSAGE_ROWS):
            text = self.messages[offset][0] if offset < len(self.messages) else ""
            write_at(term, 0, top + offset, term.bright_black(text))
        write_at(
            term,
            0,
            top + MESSAGE_ROWS,
            term.bright_black(
                "space power  n next  s shuffle  ←/→ dial  enter tune  "
                "1-9 station  +/- volume  [/] tone  q quit"
            ),
        )
        sys.stdout.flush()

    def _spawn(self, coro: Coroutine) -> Optional[asyncio.Task]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log(f"Command failed: {task.exception()}", level="error")


def run_radio_ui(controller: PlaybackController, config: Config) -> None:
    """
    Run the full-screen radio until the user quits.

    Args:
        controller: Playback controller for the loaded catalog
        config: Loaded configuration (visualizer sizing and frame rate)
    """
    term = Terminal()
    visualizer = Visualizer(
        controller,
        bar_count=config.visualizer.bar_count,
        width=config.visualizer.width,
        height=config.visualizer.height,
    )

    async def main() -> None:
        dial = StationDial(controller, RealtimeScheduler(config.visualizer.fps))
        app = RadioApp(term, controller, dial, visualizer, fps=config.visualizer.fps)
        await app.run()

    set_fullscreen_mode(True)
    try:
        with term.fullscreen(), term.cbreak(), term.hidden_cursor():
            try:
                asyncio.run(main())
            except KeyboardInterrupt:
                logger.info("Ctrl+C detected - exiting")
    finally:
        set_fullscreen_mode(False)
