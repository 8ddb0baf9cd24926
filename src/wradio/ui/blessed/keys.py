"""Keyboard handling for the radio screen.

Keys map onto ``RadioCommand`` values; the app loop executes them.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from blessed.keyboard import Keystroke

VOLUME_STEP = 5
TONE_STEP = 5


@dataclass
class RadioCommand:
    """A user command produced by a key press."""

    action: str  # power, next, shuffle, dial, tune, volume, tone, quit
    data: dict[str, Any] = field(default_factory=dict)


def parse_key(key: Keystroke) -> dict:
    """
    Parse keystroke into event dictionary.

    Args:
        key: blessed Keystroke

    Returns:
        Event dictionary with 'type' and, for printable keys, 'char'
    """
    event = {
        "type": "unknown",
        "name": key.name if hasattr(key, "name") else None,
        "char": str(key) if key and key.isprintable() else None,
    }

    if key.name == "KEY_ENTER":
        event["type"] = "enter"
    elif key.name == "KEY_ESCAPE":
        event["type"] = "escape"
    elif key.name == "KEY_LEFT":
        event["type"] = "arrow_left"
    elif key.name == "KEY_RIGHT":
        event["type"] = "arrow_right"
    elif key == "\x03":  # Ctrl+C
        event["type"] = "ctrl_c"
    elif key and key.isprintable():
        event["type"] = "char"

    return event


def handle_key(key: Keystroke) -> Optional[RadioCommand]:
    """
    Translate a key press into a radio command.

    Args:
        key: blessed Keystroke

    Returns:
        The command to run, or None for unbound keys
    """
    event = parse_key(key)

    if event["type"] == "arrow_left":
        return RadioCommand("dial", {"step": -1})
    if event["type"] == "arrow_right":
        return RadioCommand("dial", {"step": 1})
    if event["type"] == "enter":
        return RadioCommand("tune")
    if event["type"] in ("escape", "ctrl_c"):
        return RadioCommand("quit")
    if event["type"] != "char":
        return None

    char = event["char"]
    if char in (" ", "p"):
        return RadioCommand("power")
    if char == "n":
        return RadioCommand("next")
    if char == "s":
        return RadioCommand("shuffle")
    if char == "q":
        return RadioCommand("quit")
    if char in ("+", "="):
        return RadioCommand("volume", {"delta": VOLUME_STEP})
    if char in ("-", "_"):
        return RadioCommand("volume", {"delta": -VOLUME_STEP})
    if char == "]":
        return RadioCommand("tone", {"delta": TONE_STEP})
    if char == "[":
        return RadioCommand("tone", {"delta": -TONE_STEP})
    if char.isdigit() and char != "0":
        # Number keys tune directly; '1' is the first station
        return RadioCommand("tune", {"index": int(char) - 1})
    return None
