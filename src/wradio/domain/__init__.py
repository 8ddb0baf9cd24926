"""Domain layer: catalog, track selection and playback."""
