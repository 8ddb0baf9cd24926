"""Shared Rich console with the radio's named styles."""

from rich.console import Console
from rich.theme import Theme

# Status modes shown by the controller plus log levels used by core.output.log
RADIO_THEME = Theme(
    {
        "idle": "bright_black",
        "live": "bold green",
        "warn": "bold yellow",
        "debug": "dim",
        "info": "default",
        "warning": "yellow",
        "error": "bold red",
    }
)

_console: Console | None = None


def get_console() -> Console:
    """Get or create the global console (stderr, so stdout stays pipeable)."""
    global _console
    if _console is None:
        _console = Console(stderr=True, theme=RADIO_THEME)
    return _console


def safe_print(message: str, style: str | None = None) -> None:
    """Print a line without markup parsing.

    Args:
        message: Text to print; square brackets are printed literally
        style: Theme name ("warn", "error", ...) or any Rich style string
    """
    get_console().print(message, style=style, markup=False, highlight=False)
