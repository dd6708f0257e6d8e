"""Layered configuration loading.

Layers, lowest precedence first: built-in defaults, YAML file, environment
(``FLUXPLAY_*``, optionally seeded from a ``.env`` file), CLI overrides.
Each layer is brought into the sectioned shape of ``config.yaml`` before
merging, so flat keys such as ``log_level`` and sectioned keys such as
``logging.level`` are interchangeable in every layer.
"""

from __future__ import annotations

from collections.abc import Iterator
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

# (section, flat prefix, keys). "log_level" lands in logging.level.
_FLAT_SECTIONS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("http", "http_", ("timeout_seconds", "follow_redirects", "user_agent")),
    ("logging", "log_", ("level", "format")),
    ("cache", "cache_", ("dir", "ttl_seconds")),
    ("tmdb", "tmdb_", ("api_key", "language")),
    (
        "playback",
        "",
        ("racer_url", "racing_enabled", "preferred_source", "quality_ceiling"),
    ),
)

_FLAT_KEYS: dict[str, tuple[str, str]] = {
    prefix + key: (section, key)
    for section, prefix, keys in _FLAT_SECTIONS
    for key in keys
}

_TOP_LEVEL_SCALARS = ("app_name", "environment")


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> None:
    # Mappings merge key by key; anything else (lists included) replaces.
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape, flat keys winning."""
    out: dict[str, Any] = {
        key: layer[key] for key in _TOP_LEVEL_SCALARS if key in layer
    }

    sections = {section for section, _, _ in _FLAT_SECTIONS}
    for section in sections & layer.keys():
        if isinstance(layer[section], Mapping):
            out[section] = dict(layer[section])

    if "addons" in layer:
        addons = layer["addons"]
        if not isinstance(addons, list):
            raise ValueError(f"'addons' must be a list, got: {type(addons)!r}")
        out["addons"] = [
            dict(entry) if isinstance(entry, Mapping) else entry for entry in addons
        ]

    for flat_key in _FLAT_KEYS.keys() & layer.keys():
        section, key = _FLAT_KEYS[flat_key]
        out.setdefault(section, {})[key] = layer[flat_key]

    return out


def _existing(path: Path) -> Path:
    if not path.exists():
        raise FileNotFoundError(path)
    return path


def _yaml_layer(path: Path) -> dict[str, Any]:
    parsed = yaml.safe_load(_existing(path).read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def _layers(
    config_path: Path | None, cli_overrides: Mapping[str, Any]
) -> Iterator[Mapping[str, Any]]:
    yield deepcopy(DEFAULT_CONFIG)
    if config_path is not None:
        yield _yaml_layer(config_path)
    yield EnvOverrides().to_update_dict()
    yield cli_overrides


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Merge every layer and validate the result.

    A ``.env`` file only fills variables the process environment lacks.
    Nothing is written to disk.

    Raises:
        FileNotFoundError: ``config_path`` or ``dotenv_path`` is missing.
        ValueError: the YAML file is not a mapping or ``addons`` not a list.
        pydantic.ValidationError: the merged configuration is invalid.
    """
    if dotenv_path is not None:
        load_dotenv(_existing(dotenv_path), override=False)

    merged: dict[str, Any] = {}
    for layer in _layers(config_path, cli_overrides or {}):
        _merge_into(merged, _sectioned(layer))

    return AppConfig.model_validate(merged)
