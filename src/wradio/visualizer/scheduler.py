"""Frame clocks for the visualizer loop and dial animation.

Both loops only need a monotonic time source and a way to wait for the next
display frame. ``RealtimeScheduler`` paces frames on the asyncio loop;
``VirtualScheduler`` is driven by hand so tests can assert exact frames.
"""

import asyncio
import time
from typing import Protocol


class FrameScheduler(Protocol):
    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    async def next_frame(self) -> float:
        """Wait for the next display frame and return its timestamp."""
        ...


class RealtimeScheduler:
    """Wall-clock frames at a fixed rate."""

    def __init__(self, fps: int = 60):
        self.fps = max(1, fps)
        self._interval = 1.0 / self.fps

    def now(self) -> float:
        return time.monotonic()

    async def next_frame(self) -> float:
        await asyncio.sleep(self._interval)
        return self.now()


class VirtualScheduler:
    """Deterministic clock: frames happen only when ``advance`` is awaited."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._waiters: list[asyncio.Future] = []

    def now(self) -> float:
        return self._now

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def next_frame(self) -> float:
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        return await future

    async def advance(self, seconds: float, settle: int = 5) -> None:
        """Move the clock forward one frame and let waiting tasks run.

        Args:
            seconds: Time between the previous frame and this one
            settle: Number of loop iterations to yield after waking waiters
        """
        self._now += seconds
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(self._now)
        for _ in range(settle):
            await asyncio.sleep(0)
