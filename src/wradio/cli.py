"""
Wradio CLI - entry point for the terminal radio.

Loads configuration and the station catalog, builds the playback stack and
hands it to the full-screen UI.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.table import Table

from wradio import __version__
from wradio.core.config import VALID_BACKENDS, Config, ensure_directories, load_config
from wradio.core.console import get_console, safe_print
from wradio.core.output import setup_loguru
from wradio.domain.catalog import Station, load_catalog
from wradio.domain.exceptions import WradioError
from wradio.domain.playback import (
    AudioPipeline,
    MediaElement,
    MpvElement,
    PlaybackController,
    StreamElement,
    check_ffmpeg_available,
    check_mpv_available,
    resolve_playable_url,
)
from wradio.domain.radio import TrackSelector


def build_element(config: Config) -> MediaElement:
    """Create the playback element for the configured backend.

    Falls back to mpv when ffmpeg is missing.

    Raises:
        WradioError: If no usable player is installed
    """
    backend = config.player.backend
    if backend == "stream" and not check_ffmpeg_available():
        if check_mpv_available():
            logger.warning("ffmpeg not found; falling back to mpv (no live visuals)")
            safe_print("ffmpeg not found, using mpv. Visuals will be synthetic.", "warn")
            backend = "mpv"
        else:
            raise WradioError("Neither ffmpeg nor mpv is installed.")

    if backend == "mpv":
        if not check_mpv_available():
            raise WradioError("mpv is not installed. Install it or use --backend stream.")
        return MpvElement(socket_path=config.player.mpv_socket_path)
    return StreamElement()


def build_controller(config: Config, stations: list[Station]) -> PlaybackController:
    element = build_element(config)
    pipeline = AudioPipeline(
        element,
        resolver=resolve_playable_url if config.player.resolve_streams else None,
        volume=config.player.volume,
        tone=config.player.tone,
    )
    return PlaybackController(
        stations,
        TrackSelector(),
        pipeline,
        shuffle=config.player.shuffle_on_start,
    )


def print_stations(stations: list[Station]) -> None:
    table = Table(title="Stations")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Id", style="dim")
    table.add_column("Playable", justify="right")

    for index, station in enumerate(stations, start=1):
        table.add_row(
            str(index),
            station.name,
            station.id,
            f"{len(station.valid_tracks)}/{len(station.tracks)}",
        )
    get_console().print(table)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wradio",
        description="Wradio - multi-station internet radio with a live scope",
    )
    parser.add_argument("--catalog", help="Station catalog: JSON file path or http(s) URL")
    parser.add_argument("--backend", choices=VALID_BACKENDS, help="Playback backend")
    parser.add_argument("--bars", type=int, help="Number of equalizer bars")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument(
        "--list", action="store_true", help="List stations and exit without playing"
    )
    parser.add_argument("--version", action="version", version=f"wradio {__version__}")
    return parser.parse_args(argv)


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Command-line flags take precedence over config.toml and env vars."""
    if args.catalog:
        config.catalog.source = args.catalog
    if args.backend:
        config.player.backend = args.backend
    if args.bars:
        config.visualizer.bar_count = max(1, args.bars)
    if args.log_level:
        config.logging.level = args.log_level.upper()
    return config


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the wradio command."""
    args = parse_args(argv)

    ensure_directories()
    config = apply_overrides(load_config(args.config), args)
    log_file = Path(config.logging.log_file).expanduser() if config.logging.log_file else None
    setup_loguru(log_file, config.logging.level)

    try:
        stations = load_catalog(config.catalog.source, config.catalog.request_timeout)
        if args.list:
            print_stations(stations)
            return

        controller = build_controller(config, stations)

        from wradio.ui.blessed import run_radio_ui

        run_radio_ui(controller, config)
    except WradioError as e:
        logger.error(f"Fatal: {e}")
        safe_print(str(e), "error")
        sys.exit(1)
    except KeyboardInterrupt:
        safe_print("\nInterrupted by user.", "warning")


if __name__ == "__main__":
    main()
