"""Wradio - multi-station internet radio with a live scope and equalizer."""

__version__ = "0.1.0"
