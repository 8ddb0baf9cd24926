"""
Decoded-stream playback element.

ffmpeg decodes the track URL to float PCM on a pipe and the element writes
blocks to a sounddevice output stream, pacing itself on the stream's free
space. Because the element owns the decoded blocks it can route them through
an analysis graph.
"""

import asyncio
import shutil
from typing import Any, Callable, Optional

import numpy as np
from loguru import logger

from ..exceptions import (
    GraphConstructionFailed,
    PlaybackBlocked,
    PlaybackRuntimeFailure,
)
from .element import MediaElement, RenderCallback

# Seconds to wait for the first decoded block
FIRST_BLOCK_TIMEOUT = 15.0

# Opens and starts an output stream; raises OSError when no device is usable
OutputFactory = Callable[[int, int], Any]


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available on the system."""
    return shutil.which("ffmpeg") is not None


def _default_output(sample_rate: int, channels: int):
    # PortAudio is loaded on first use so the package imports without it
    import sounddevice as sd

    try:
        stream = sd.OutputStream(samplerate=sample_rate, channels=channels, dtype="float32")
        stream.start()
    except sd.PortAudioError as e:
        raise OSError(str(e)) from e
    return stream


class StreamElement(MediaElement):
    """Plays URLs by decoding them with ffmpeg."""

    def __init__(
        self,
        sample_rate: int = 44100,
        channels: int = 2,
        block_frames: int = 1024,
        ffmpeg: str = "ffmpeg",
        output_factory: Optional[OutputFactory] = None,
    ):
        super().__init__()
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_frames = block_frames
        self.ffmpeg = ffmpeg
        self._output_factory = output_factory or _default_output
        self._render: Optional[RenderCallback] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stream = None
        self._pump_task: Optional[asyncio.Task] = None
        self._running = asyncio.Event()
        self._frames_played = 0

    @property
    def current_time(self) -> float:
        return self._frames_played / self.sample_rate

    @property
    def _block_bytes(self) -> int:
        return self.block_frames * self.channels * 4

    def load(self, url: str) -> None:
        self._stop_decoder()
        super().load(url)
        self._frames_played = 0

    async def play(self) -> None:
        if not self.src:
            raise PlaybackBlocked("No source loaded")

        if self._pump_task and not self._pump_task.done():
            self.paused = False
            self._running.set()
            return

        first_block = await self._start_decoder()
        try:
            self._stream = self._output_factory(self.sample_rate, self.channels)
        except (OSError, ValueError) as e:
            self._stop_decoder()
            raise PlaybackBlocked(f"Audio output unavailable: {e}") from e

        self.paused = False
        self._running.set()
        self._pump_task = asyncio.create_task(self._pump(first_block))
        logger.info(f"Streaming {self.src}")

    def pause(self) -> None:
        self.paused = True
        self._running.clear()

    async def close(self) -> None:
        self._stop_decoder()

    def capture_output(self, render: RenderCallback, sample_rate: int) -> None:
        if sample_rate != self.sample_rate:
            raise GraphConstructionFailed(
                f"Graph runs at {sample_rate} Hz but the stream decodes at {self.sample_rate} Hz"
            )
        self._render = render

    def release_output(self) -> None:
        self._render = None

    async def _start_decoder(self) -> bytes:
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.ffmpeg,
                "-nostdin",
                "-loglevel",
                "error",
                "-i",
                self.src,
                "-f",
                "f32le",
                "-ac",
                str(self.channels),
                "-ar",
                str(self.sample_rate),
                "-",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PlaybackBlocked(f"Failed to start ffmpeg: {e}") from e

        try:
            first_block = await asyncio.wait_for(
                self._read_block(), FIRST_BLOCK_TIMEOUT
            )
        except asyncio.TimeoutError as e:
            self._stop_decoder()
            raise PlaybackRuntimeFailure(self.src, "timed out opening stream") from e

        if not first_block:
            detail = await self._decoder_error()
            self._stop_decoder()
            raise PlaybackRuntimeFailure(self.src, detail)
        return first_block

    async def _read_block(self) -> bytes:
        assert self._process is not None and self._process.stdout is not None
        try:
            return await self._process.stdout.readexactly(self._block_bytes)
        except asyncio.IncompleteReadError as e:
            return e.partial

    async def _decoder_error(self) -> str:
        if not self._process or not self._process.stderr:
            return "decoder exited"
        stderr = await self._process.stderr.read()
        return stderr.decode("utf-8", errors="replace").strip() or "decoder exited"

    async def _pump(self, block_bytes: bytes) -> None:
        block_seconds = self.block_frames / self.sample_rate
        while block_bytes:
            await self._running.wait()
            usable = len(block_bytes) - len(block_bytes) % (self.channels * 4)
            block = np.frombuffer(block_bytes[:usable], dtype=np.float32).reshape(
                -1, self.channels
            )
            block = block * np.float32(self.volume)
            if self._render is not None:
                block = self._render(block)

            while self._stream.write_available < len(block):
                await asyncio.sleep(block_seconds / 4)
            self._stream.write(np.ascontiguousarray(block, dtype=np.float32))
            self._frames_played += len(block)

            block_bytes = await self._read_block()

        returncode = await self._process.wait()
        if returncode == 0:
            self._emit_ended()
        else:
            self._emit_error(await self._decoder_error())

    def _stop_decoder(self) -> None:
        if self._pump_task:
            self._pump_task.cancel()
            self._pump_task = None
        if self._process and self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        self._process = None
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._running.clear()
