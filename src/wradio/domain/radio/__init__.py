"""
Radio tuning domain - track selection and the station dial.
"""

from .dial import SNAP_DURATION, StationDial, ease_out_cubic
from .selector import RandomSource, SelectionHistory, SelectionMode, TrackSelector

__all__ = [
    # Selection
    "TrackSelector",
    "SelectionMode",
    "SelectionHistory",
    "RandomSource",
    # Dial
    "StationDial",
    "SNAP_DURATION",
    "ease_out_cubic",
]
