"""Tests for the wradio command-line entry point."""

import json

import pytest

from wradio import cli
from wradio.core.config import Config
from wradio.domain.exceptions import WradioError
from wradio.domain.playback import MpvElement, StreamElement


@pytest.fixture
def tools(monkeypatch):
    """Control which external players appear installed."""
    installed = {"ffmpeg": True, "mpv": True}
    monkeypatch.setattr(cli, "check_ffmpeg_available", lambda: installed["ffmpeg"])
    monkeypatch.setattr(cli, "check_mpv_available", lambda: installed["mpv"])
    return installed


class TestBuildElement:
    def test_stream_backend(self, tools) -> None:
        assert isinstance(cli.build_element(Config()), StreamElement)

    def test_mpv_backend(self, tools) -> None:
        config = Config()
        config.player.backend = "mpv"
        config.player.mpv_socket_path = "/tmp/wradio-test.sock"
        element = cli.build_element(config)
        assert isinstance(element, MpvElement)
        assert element.socket_path == "/tmp/wradio-test.sock"

    def test_falls_back_to_mpv_without_ffmpeg(self, tools) -> None:
        tools["ffmpeg"] = False
        assert isinstance(cli.build_element(Config()), MpvElement)

    def test_no_player_installed(self, tools) -> None:
        tools["ffmpeg"] = False
        tools["mpv"] = False
        with pytest.raises(WradioError, match="Neither ffmpeg nor mpv"):
            cli.build_element(Config())

    def test_mpv_requested_but_missing(self, tools) -> None:
        tools["mpv"] = False
        config = Config()
        config.player.backend = "mpv"
        with pytest.raises(WradioError, match="mpv is not installed"):
            cli.build_element(config)


class TestArguments:
    def test_overrides_take_precedence(self) -> None:
        args = cli.parse_args(
            ["--catalog", "https://radio.example/stations.json", "--backend", "mpv", "--bars", "32", "--log-level", "debug"]
        )
        config = cli.apply_overrides(Config(), args)

        assert config.catalog.source == "https://radio.example/stations.json"
        assert config.player.backend == "mpv"
        assert config.visualizer.bar_count == 32
        assert config.logging.level == "DEBUG"

    def test_no_flags_keep_config(self) -> None:
        config = cli.apply_overrides(Config(), cli.parse_args([]))
        assert config == Config()

    def test_invalid_backend_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args(["--backend", "vlc"])


class TestBuildController:
    def test_applies_player_settings(self, tools, jazz) -> None:
        config = Config()
        config.player.volume = 40
        config.player.shuffle_on_start = False
        controller = cli.build_controller(config, [jazz])

        assert controller.pipeline.volume == 40
        assert not controller.session.is_shuffle
        assert controller.current_station is jazz


class TestMain:
    @pytest.fixture(autouse=True)
    def isolated_dirs(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        monkeypatch.setattr(cli, "setup_loguru", lambda *args: None)

    def test_list_prints_stations(self, tmp_path, capsys) -> None:
        catalog = tmp_path / "stations.json"
        catalog.write_text(
            json.dumps(
                {"stations": [{"id": "jazz", "name": "Jazz", "tracks": [{"url": "https://radio.example/a.mp3"}]}]}
            )
        )
        cli.main(["--catalog", str(catalog), "--list"])

        out = capsys.readouterr().err
        assert "Jazz" in out
        assert "1/1" in out

    def test_missing_catalog_exits(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["--catalog", str(tmp_path / "missing.json"), "--list"])
        assert exc.value.code == 1
