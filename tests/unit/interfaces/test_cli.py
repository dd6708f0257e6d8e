"""Tests for the fluxplay CLI entrypoint."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
import yaml

from fluxplay.interfaces.cli import cli


class TestCliOverrides:
    def test_no_flags_no_overrides(self) -> None:
        assert cli._cli_overrides(cli._parse_args([])) == {}

    def test_playback_flags(self) -> None:
        args = cli._parse_args(
            [
                "--racer-url",
                "https://racer.example/race",
                "--quality-ceiling",
                "720p",
                "--preferred-source",
                "Nuvio",
            ]
        )
        assert cli._cli_overrides(args) == {
            "racer_url": "https://racer.example/race",
            "quality_ceiling": "720p",
            "preferred_source": "Nuvio",
        }

    def test_no_racing(self) -> None:
        args = cli._parse_args(["--no-racing"])
        assert cli._cli_overrides(args) == {"racing_enabled": False}

    def test_logging_flags(self) -> None:
        args = cli._parse_args(["--log-level", "DEBUG", "--log-format", "json"])
        assert cli._cli_overrides(args) == {"log_level": "DEBUG", "log_format": "json"}

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli._parse_args(["--log-level", "TRACE"])


class TestStart:
    def test_runs_uvicorn_with_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        run = MagicMock()
        captured: dict[str, Any] = {}

        def fake_create_app(config: Any) -> str:
            captured["config"] = config
            return "app"

        monkeypatch.setattr(cli.uvicorn, "run", run)
        monkeypatch.setattr(cli, "create_app", fake_create_app)
        monkeypatch.setattr(cli, "configure_logging", lambda config: {"version": 1})

        cli.start(["--port", "9000", "--host", "127.0.0.1", "--no-racing"])

        run.assert_called_once_with(
            "app", host="127.0.0.1", port=9000, log_config={"version": 1}
        )
        assert captured["config"].playback.racing_enabled is False

    def test_print_config_skips_server(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        run = MagicMock()
        monkeypatch.setattr(cli.uvicorn, "run", run)

        cli.start(["--print-config", "--quality-ceiling", "720p"])

        run.assert_not_called()
        dumped = yaml.safe_load(capsys.readouterr().out)
        assert dumped["playback"]["quality_ceiling"] == "720p"
        assert dumped["app_name"] == "fluxplay"
        assert "tmdb_api_key" not in dumped["tmdb"]
