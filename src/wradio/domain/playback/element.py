"""
Playback element interface.

A playback element is the always-present raw player: it loads one URL at a
time, plays and pauses it, has its own volume, and reports natural ends and
runtime failures through callbacks. Elements that can expose their decoded
output let an ``AudioContext`` route it through an analysis graph.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np
from loguru import logger

from ..exceptions import GraphConstructionFailed, PlaybackRuntimeFailure

# Receives a decoded block and returns the block to send to the speakers
RenderCallback = Callable[[np.ndarray], np.ndarray]


class MediaElement(ABC):
    """Base class for playback elements."""

    def __init__(self) -> None:
        self.src: Optional[str] = None
        self.paused = True
        self._volume = 1.0
        self.on_ended: Optional[Callable[[], None]] = None
        self.on_error: Optional[Callable[[PlaybackRuntimeFailure], None]] = None

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = min(max(float(value), 0.0), 1.0)
        self._apply_volume()

    @property
    @abstractmethod
    def current_time(self) -> float:
        """Playback position of the loaded source in seconds."""

    def load(self, url: str) -> None:
        """Replace the current source; playback starts on the next ``play()``."""
        self.src = url
        self.paused = True

    @abstractmethod
    async def play(self) -> None:
        """Start or resume playback of ``src``.

        Raises:
            PlaybackBlocked: If the player or output device refuses to start
            PlaybackRuntimeFailure: If the source itself cannot be opened
        """

    @abstractmethod
    def pause(self) -> None:
        """Pause playback, keeping the position."""

    async def close(self) -> None:
        """Release processes and devices held by the element."""

    def capture_output(self, render: RenderCallback, sample_rate: int) -> None:
        """Send decoded blocks through ``render`` instead of straight out.

        Raises:
            GraphConstructionFailed: If the element cannot expose decoded audio
        """
        raise GraphConstructionFailed(
            f"{type(self).__name__} does not expose decoded audio"
        )

    def release_output(self) -> None:
        """Stop routing through a graph and play directly again."""

    def _apply_volume(self) -> None:
        pass

    def _emit_ended(self) -> None:
        logger.debug(f"Playback ended: {self.src}")
        self.paused = True
        if self.on_ended:
            self.on_ended()

    def _emit_error(self, reason: str) -> None:
        logger.warning(f"Playback error for {self.src}: {reason}")
        self.paused = True
        if self.on_error:
            self.on_error(PlaybackRuntimeFailure(self.src or "", reason))
