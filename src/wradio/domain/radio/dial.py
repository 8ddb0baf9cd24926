"""
Station dial.

A continuous tuning knob over the station list. Dragging previews the
nearest station; releasing snaps to it with a short eased animation and then
tunes the controller.
"""

from typing import TYPE_CHECKING

from loguru import logger

from wradio.visualizer.scheduler import FrameScheduler

if TYPE_CHECKING:
    from wradio.domain.playback.controller import PlaybackController

SNAP_DURATION = 0.22


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


class StationDial:
    def __init__(self, controller: "PlaybackController", scheduler: FrameScheduler):
        self.controller = controller
        self.scheduler = scheduler
        self.value = float(controller.session.station_index)
        self.animating = False

    @property
    def max_value(self) -> int:
        return len(self.controller.stations) - 1

    @property
    def nearest(self) -> int:
        return self._clamp_index(round(self.value))

    def preview(self, value: float) -> int:
        """Move the dial without tuning; the controller shows the nearest station."""
        self.value = min(max(float(value), 0.0), float(self.max_value))
        self.controller.preview_station(self.nearest)
        return self.nearest

    def nudge(self, step: int) -> int:
        """Move the dial one station left or right (display only)."""
        return self.preview(self.nearest + step)

    async def snap_to(self, index: int) -> bool:
        """Animate to ``index`` and tune the controller there.

        Returns:
            False if another snap is still running, True once tuned
        """
        if self.animating:
            logger.debug("Dial snap already running; ignoring request")
            return False

        target = self._clamp_index(index)
        start_value = self.value
        start_time = self.scheduler.now()
        self.animating = True
        try:
            while True:
                now = await self.scheduler.next_frame()
                progress = min((now - start_time) / SNAP_DURATION, 1.0)
                self.value = start_value + (target - start_value) * ease_out_cubic(progress)
                # The station label follows the dial while it moves
                self.controller.preview_station(self.nearest)
                if progress >= 1.0:
                    break
            self.value = float(target)
        finally:
            self.animating = False

        # Overlapping starts are queued by the controller, not the dial
        await self.controller.set_station(target)
        return True

    def _clamp_index(self, index: int) -> int:
        return max(0, min(self.max_value, int(index)))
