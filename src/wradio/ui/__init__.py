"""User interfaces for Wradio."""
