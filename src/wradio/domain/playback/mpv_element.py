"""
MPV playback element over JSON IPC.

mpv plays the stream itself and never hands decoded audio back, so an
analysis graph cannot be attached; tracks played here use fallback visuals.
"""

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from ..exceptions import PlaybackBlocked, PlaybackRuntimeFailure
from .element import MediaElement

# Seconds to wait for mpv to create its IPC socket
SOCKET_TIMEOUT = 5.0

# Seconds to wait for a loaded file to start playing
LOAD_TIMEOUT = 15.0

COMMAND_TIMEOUT = 2.0


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    return shutil.which("mpv") is not None


class MpvElement(MediaElement):
    """Plays URLs through a private mpv process."""

    def __init__(self, socket_path: Optional[str] = None, load_timeout: float = LOAD_TIMEOUT):
        super().__init__()
        if socket_path is None:
            socket_path = str(Path(tempfile.gettempdir()) / f"wradio-mpv-{os.getpid()}")
        self.socket_path = socket_path
        self.load_timeout = load_timeout
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._responses: dict[int, asyncio.Future] = {}
        self._request_id = 0
        self._loaded_src: Optional[str] = None
        self._start_waiter: Optional[asyncio.Future] = None
        self._time_pos = 0.0

    @property
    def current_time(self) -> float:
        return self._time_pos

    def is_running(self) -> bool:
        return (
            self._process is not None
            and self._process.returncode is None
            and self._writer is not None
        )

    async def start(self) -> None:
        """Start mpv with JSON IPC and connect to its socket.

        Raises:
            PlaybackBlocked: If mpv is missing or its socket never appears
        """
        if os.path.exists(self.socket_path):
            logger.debug(f"Removing existing socket: {self.socket_path}")
            os.unlink(self.socket_path)

        logger.info(f"Starting MPV player with socket: {self.socket_path}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                "mpv",
                "--idle=yes",
                "--no-video",
                "--no-terminal",
                f"--input-ipc-server={self.socket_path}",
                f"--volume={round(self.volume * 100)}",
                "--load-scripts=no",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise PlaybackBlocked(f"Failed to start MPV: {e}") from e

        loop = asyncio.get_running_loop()
        deadline = loop.time() + SOCKET_TIMEOUT
        while not os.path.exists(self.socket_path):
            if loop.time() > deadline or self._process.returncode is not None:
                logger.error(f"MPV socket creation timeout after {SOCKET_TIMEOUT}s")
                await self.close()
                raise PlaybackBlocked("MPV did not start")
            await asyncio.sleep(0.1)

        self._reader, self._writer = await asyncio.open_unix_connection(self.socket_path)
        self._reader_task = asyncio.create_task(self._read_events())
        await self._command("observe_property", 1, "time-pos")
        logger.info("MPV started successfully")

    async def play(self) -> None:
        if not self.src:
            raise PlaybackBlocked("No source loaded")
        if not self.is_running():
            try:
                await self.start()
            except (ConnectionError, OSError) as e:
                # Covers a refused socket and IPC command timeouts
                await self.close()
                raise PlaybackBlocked(f"MPV IPC unavailable: {e!r}") from e

        try:
            if self._loaded_src != self.src:
                self._start_waiter = asyncio.get_running_loop().create_future()
                self._time_pos = 0.0
                await self._command("loadfile", self.src, "replace")
                await self._command("set_property", "pause", False)
                await asyncio.wait_for(self._start_waiter, self.load_timeout)
                self._loaded_src = self.src
            else:
                await self._command("set_property", "pause", False)
        except asyncio.TimeoutError as e:
            raise PlaybackRuntimeFailure(self.src, "timed out opening stream") from e
        except (ConnectionError, OSError) as e:
            raise PlaybackBlocked(f"MPV could not start {self.src}: {e!r}") from e
        finally:
            self._start_waiter = None

        self.paused = False

    def pause(self) -> None:
        self.paused = True
        self._send_nowait("set_property", "pause", True)

    def load(self, url: str) -> None:
        super().load(url)
        self._loaded_src = None

    async def close(self) -> None:
        if self._reader_task:
            self._reader_task.cancel()
            self._reader_task = None
        if self._writer:
            self._writer.close()
            self._writer = None
        if self._process and self._process.returncode is None:
            try:
                self._process.kill()
                await asyncio.wait_for(self._process.wait(), 2.0)
            except (ProcessLookupError, asyncio.TimeoutError):
                pass
        self._process = None
        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass

    def _apply_volume(self) -> None:
        self._send_nowait("set_property", "volume", round(self.volume * 100))

    def _send_nowait(self, *args: Any) -> None:
        """Write a command without waiting for mpv's reply."""
        if not self._writer:
            return
        self._writer.write((json.dumps({"command": list(args)}) + "\n").encode("utf-8"))

    async def _command(self, *args: Any) -> Any:
        """Send a command and wait for its reply.

        Raises:
            ConnectionError: If mpv is not connected or reports a failure
        """
        if not self._writer:
            raise ConnectionError("MPV is not connected")
        self._request_id += 1
        request_id = self._request_id
        future = asyncio.get_running_loop().create_future()
        self._responses[request_id] = future

        payload = {"command": list(args), "request_id": request_id}
        self._writer.write((json.dumps(payload) + "\n").encode("utf-8"))
        await self._writer.drain()
        try:
            response = await asyncio.wait_for(future, COMMAND_TIMEOUT)
        finally:
            self._responses.pop(request_id, None)

        if response.get("error") != "success":
            raise ConnectionError(f"MPV command {args[0]} failed: {response.get('error')}")
        return response.get("data")

    async def _read_events(self) -> None:
        assert self._reader is not None
        while True:
            line = await self._reader.readline()
            if not line:
                logger.warning("MPV IPC connection closed")
                if self._start_waiter and not self._start_waiter.done():
                    self._start_waiter.set_exception(ConnectionError("MPV exited"))
                elif not self.paused:
                    self._emit_error("player exited")
                return
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                continue
            self._dispatch(message)

    def _dispatch(self, message: dict) -> None:
        request_id = message.get("request_id")
        if request_id in self._responses:
            future = self._responses[request_id]
            if not future.done():
                future.set_result(message)
            return

        event = message.get("event")
        if event == "property-change" and message.get("name") == "time-pos":
            self._time_pos = float(message.get("data") or 0.0)
        elif event == "playback-restart":
            if self._start_waiter and not self._start_waiter.done():
                self._start_waiter.set_result(True)
        elif event == "end-file":
            self._handle_end_file(message.get("reason"), message.get("file_error"))

    def _handle_end_file(self, reason: Optional[str], file_error: Optional[str]) -> None:
        # 'stop' and 'redirect' come from our own loadfile replacing the file
        if reason == "error":
            if self._start_waiter and not self._start_waiter.done():
                self._start_waiter.set_exception(
                    PlaybackRuntimeFailure(self.src or "", file_error or "load failed")
                )
            else:
                self._emit_error(file_error or "error")
        elif reason == "eof":
            self._loaded_src = None
            self._emit_ended()
