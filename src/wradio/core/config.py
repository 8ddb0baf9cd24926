"""
Configuration management for Wradio
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

VALID_BACKENDS = ("stream", "mpv")


@dataclass
class CatalogConfig:
    """Configuration for the station catalog."""

    source: str = "stations.json"  # Local path or http(s) URL
    request_timeout: float = 10.0  # Seconds, remote catalogs only


@dataclass
class PlayerConfig:
    """Configuration for playback."""

    backend: str = "stream"  # 'stream' (ffmpeg + sounddevice) or 'mpv'
    mpv_socket_path: Optional[str] = None
    volume: int = 70
    tone: int = 70
    shuffle_on_start: bool = True
    resolve_streams: bool = False  # Resolve page permalinks through yt-dlp

    def validate(self) -> None:
        """Validate player configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.backend not in VALID_BACKENDS:
            raise ValueError(
                f"Invalid backend: {self.backend!r}. "
                f"Valid backends are: {VALID_BACKENDS}"
            )
        for name in ("volume", "tone"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")


@dataclass
class VisualizerConfig:
    """Configuration for the scope and equalizer bars."""

    bar_count: int = 20
    fps: int = 30
    width: int = 96  # Drawing-surface units (terminal columns)
    height: int = 48  # Drawing-surface units (2 per terminal row)


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/wradio/wradio.log)
    )


@dataclass
class Config:
    """Main configuration object."""

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    visualizer: VisualizerConfig = field(default_factory=VisualizerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "wradio"
    return Path.home() / ".config" / "wradio"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/wradio (or ~/.config/wradio)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "wradio"
    return Path.home() / ".local" / "share" / "wradio"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Wradio Configuration

[catalog]
# Local JSON file or http(s) URL with a "stations" list
source = "stations.json"

# Timeout in seconds when fetching a remote catalog
request_timeout = 10.0

[player]
# 'stream' decodes with ffmpeg and plays through sounddevice (live visuals)
# 'mpv' plays through mpv (fallback visuals only)
backend = "stream"

# Path for mpv socket (auto-generated if not specified)
# mpv_socket_path = "/tmp/wradio-mpv"

# Initial volume and tone dials (0-100)
volume = 70
tone = 70

# Start in shuffle mode
shuffle_on_start = true

# Resolve SoundCloud/YouTube page links to stream URLs with yt-dlp
resolve_streams = false

[visualizer]
bar_count = 20
fps = 30
width = 96
height = 48

[logging]
# DEBUG, INFO, WARNING, ERROR, CRITICAL
level = "INFO"
# log_file = "~/.local/share/wradio/wradio.log"
"""


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, keeping defaults for missing keys."""
    config = Config()

    if "catalog" in toml_data:
        catalog_data = toml_data["catalog"]
        config.catalog = CatalogConfig(
            source=str(catalog_data.get("source", config.catalog.source)),
            request_timeout=float(
                catalog_data.get("request_timeout", config.catalog.request_timeout)
            ),
        )

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            backend=player_data.get("backend", config.player.backend),
            mpv_socket_path=player_data.get("mpv_socket_path"),
            volume=player_data.get("volume", config.player.volume),
            tone=player_data.get("tone", config.player.tone),
            shuffle_on_start=player_data.get(
                "shuffle_on_start", config.player.shuffle_on_start
            ),
            resolve_streams=player_data.get(
                "resolve_streams", config.player.resolve_streams
            ),
        )
        try:
            config.player.validate()
        except ValueError as e:
            print(f"Warning: Invalid player configuration: {e}")
            print("Using default player configuration.")
            config.player = PlayerConfig()

    if "visualizer" in toml_data:
        visualizer_data = toml_data["visualizer"]
        config.visualizer = VisualizerConfig(
            bar_count=max(
                1, visualizer_data.get("bar_count", config.visualizer.bar_count)
            ),
            fps=max(1, visualizer_data.get("fps", config.visualizer.fps)),
            width=max(1, visualizer_data.get("width", config.visualizer.width)),
            height=max(1, visualizer_data.get("height", config.visualizer.height)),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
        )

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - WRADIO_CATALOG
    - WRADIO_BACKEND
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = _parse_config(toml_data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            print(f"Error loading configuration from {config_path}: {e}")
            print("Using default configuration.")
            config = Config()

    catalog_source = os.environ.get("WRADIO_CATALOG")
    if catalog_source:
        config.catalog.source = catalog_source

    backend = os.environ.get("WRADIO_BACKEND")
    if backend in VALID_BACKENDS:
        config.player.backend = backend

    return config


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
