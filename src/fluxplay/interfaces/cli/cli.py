from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn
import yaml

from fluxplay.infrastructure.config import AppConfig, load_config
from fluxplay.infrastructure.logging.setup import configure_logging
from fluxplay.interfaces.app import create_app

log = structlog.get_logger(__name__)

# (flag, flat config key, help). Values are forwarded as CLI-layer overrides.
_VALUE_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("--racer-url", "racer_url", "Racing worker endpoint (enables racing)."),
    (
        "--quality-ceiling",
        "quality_ceiling",
        "Highest preferred quality (SD/480p/720p/1080p/4K).",
    ),
    (
        "--preferred-source",
        "preferred_source",
        "Addon source ranked first after the sticky source.",
    ),
    ("--tmdb-api-key", "tmdb_api_key", "TMDB API key for metadata lookups."),
)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fluxplay",
        description="Resolve movies and episodes to playable stream URLs.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help="Bind host (default: HOST env or 0.0.0.0).")
    server.add_argument(
        "--port", type=int, help="Bind port (default: PORT env or 8765)."
    )

    sources = parser.add_argument_group("configuration sources")
    sources.add_argument("--config", type=Path, help="YAML config file.")
    sources.add_argument("--dotenv", type=Path, help=".env file with FLUXPLAY_* vars.")
    sources.add_argument(
        "--print-config",
        action="store_true",
        help="Print the merged configuration as YAML and exit.",
    )

    playback = parser.add_argument_group("playback overrides")
    for flag, key, help_text in _VALUE_OVERRIDES:
        playback.add_argument(flag, dest=key, help=help_text)
    playback.add_argument(
        "--no-racing",
        dest="racing_enabled",
        action="store_false",
        default=None,
        help="Never race; always use the top-ranked candidate.",
    )

    logging_group = parser.add_argument_group("logging overrides")
    logging_group.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    logging_group.add_argument("--log-format", choices=["json", "console"])

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flat overrides for every flag the user actually passed."""
    keys = [key for _, key, _ in _VALUE_OVERRIDES]
    keys += ["racing_enabled", "log_level", "log_format"]
    return {key: getattr(args, key) for key in keys if getattr(args, key) is not None}


def _dump_config(config: AppConfig) -> str:
    return yaml.safe_dump(config.to_sectioned_dict(), sort_keys=False)


def start(argv: Iterable[str] | None = None) -> None:
    """Process entrypoint: load config once, configure logging, serve."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    config = load_config(
        config_path=args.config,
        dotenv_path=args.dotenv,
        cli_overrides=_cli_overrides(args),
    )
    if args.print_config:
        sys.stdout.write(_dump_config(config))
        return

    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = args.port or int(os.getenv("PORT", "8765"))

    log_config = configure_logging(config)
    log.info(
        "fluxplay_starting",
        host=host,
        port=port,
        environment=config.environment,
        addons=[s.name for s in config.enabled_sources],
        racing=config.playback.racing_active,
    )

    uvicorn.run(create_app(config), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    raise SystemExit(start())
