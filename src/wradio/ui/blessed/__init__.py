"""
Blessed full-screen front end for the radio.
"""

from .app import RadioApp, run_radio_ui
from .keys import RadioCommand, handle_key, parse_key
from .surface import TerminalSurface, bar_rows, rasterize

__all__ = [
    # App
    "RadioApp",
    "run_radio_ui",
    # Keys
    "RadioCommand",
    "handle_key",
    "parse_key",
    # Surface
    "TerminalSurface",
    "rasterize",
    "bar_rows",
]
