from __future__ import annotations

from .load import load_config
from .schema import AddonSourceConfig, AppConfig, EnvOverrides, PlaybackConfig

__all__ = [
    "AddonSourceConfig",
    "AppConfig",
    "EnvOverrides",
    "PlaybackConfig",
    "load_config",
]
