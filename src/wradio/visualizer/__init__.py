"""
Visualizer - oscilloscope and equalizer bars as draw instructions.
"""

from .drawing import Clear, FillRect, Frame, SetBarHeights, StrokePolyline, Surface
from .scheduler import FrameScheduler, RealtimeScheduler, VirtualScheduler
from .visualizer import Visualizer, bucket_bar_heights

__all__ = [
    # Rendering
    "Visualizer",
    "bucket_bar_heights",
    # Draw instructions
    "Frame",
    "Clear",
    "FillRect",
    "StrokePolyline",
    "SetBarHeights",
    "Surface",
    # Scheduling
    "FrameScheduler",
    "RealtimeScheduler",
    "VirtualScheduler",
]
