"""
Unified output system using Loguru.
Writes every user-facing message to the log file and, outside the
full-screen UI, to the console.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from .config import get_data_dir
from .console import safe_print

# Set while the blessed UI owns the terminal; print() would corrupt the screen
_fullscreen_active = False

# Messages logged while the blessed UI is active, drained once per frame
_pending_messages: list[tuple[str, str]] = []


def get_log_file_path() -> Path:
    """Get the default path to the log file."""
    return get_data_dir() / "wradio.log"


def setup_loguru(log_file: Optional[Path] = None, level: str = "INFO") -> Path:
    """
    Configure loguru for file-only logging (the UI handles console display).

    Args:
        log_file: Path to log file (default: ~/.local/share/wradio/wradio.log)
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)

    Returns:
        The log file path in use
    """
    log_file = log_file or get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()

    logger.add(
        log_file,
        rotation="10 MB",
        retention=5,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    logger.info(f"Loguru initialized: {log_file} (level={level})")
    return log_file


def set_fullscreen_mode(active: bool) -> None:
    """Toggle full-screen mode - suppresses stdout printing while active."""
    global _fullscreen_active
    _fullscreen_active = active
    logger.debug(f"Full-screen mode {'enabled' if active else 'disabled'}")


def drain_pending_messages() -> list[tuple[str, str]]:
    """
    Get and clear all pending messages.

    Returns:
        List of (message, level) tuples
    """
    global _pending_messages
    messages = _pending_messages
    _pending_messages = []
    return messages


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to file AND shows the message to the user.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    if _fullscreen_active:
        _pending_messages.append((message, level))
    else:
        safe_print(message, level)
