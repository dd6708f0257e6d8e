"""Lowest configuration layer, in the sectioned config.yaml shape."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "fluxplay",
    "environment": "dev",
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": "fluxplay/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # console outside prod, see AppConfig
    },
    "cache": {
        "dir": "./.cache/fluxplay",
        "ttl_seconds": 3600,
    },
    "tmdb": {
        "language": "en-US",
    },
    "addons": [
        {"name": "WebStreamer", "base_url": "https://webstreamr.hayd.uk"},
        {"name": "Nuvio", "base_url": "https://nuviostreams.hayd.uk"},
    ],
    "playback": {
        "preferred_source": "WebStreamer",
        "quality_ceiling": "4K",
        "title_match_ratio": 0.75,
        "racing_enabled": True,
        "racer_url": None,
        "race_timeout_seconds": 5.0,
        "race_per_source": 5,
        "race_source_count": 2,
        "addon_timeout_seconds": 8.0,
        "probe_timeout_seconds": 3.0,
        "freshness_window_seconds": 3600,
        "refresh_delay_seconds": 3.0,
        "preload_threshold": 0.9,
    },
}
