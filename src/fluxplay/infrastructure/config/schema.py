"""Configuration models: addon sources, playback tuning, process settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluxplay.domain.entities.playback import AddonSource, QualityTier, RankingPolicy

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _as_path(value: Any) -> Path:
    # Expands "~" only; the directory is created by the cache on open.
    if not isinstance(value, (str, Path)):
        raise ValueError(f"cache_dir must be a path, got {type(value).__name__}")
    return Path(value).expanduser()


class AddonSourceConfig(BaseModel):
    """One Stremio-protocol stream addon (YAML: ``addons[]``)."""

    name: str = Field(description="Source name used for ranking and logs.")
    base_url: str = Field(description="Addon base URL (without /manifest.json).")
    enabled: bool = Field(default=True, description="Query this addon.")

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")

    def to_source(self) -> AddonSource:
        return AddonSource(name=self.name, base_url=self.base_url, enabled=self.enabled)


def _default_addons() -> list[AddonSourceConfig]:
    return [
        AddonSourceConfig(name="WebStreamer", base_url="https://webstreamr.hayd.uk"),
        AddonSourceConfig(name="Nuvio", base_url="https://nuviostreams.hayd.uk"),
    ]


class PlaybackConfig(BaseModel):
    """Stream selection, racing and session-continuity tuning.

    All values configurable via YAML (playback section) or ENV vars.
    Read as a snapshot at the start of every resolution.
    """

    preferred_source: Optional[str] = Field(
        default="WebStreamer",
        description="Source ranked right after the sticky source.",
    )
    quality_ceiling: str = Field(
        default="4K",
        description="Highest quality the user wants (SD/480p/720p/1080p/4K).",
    )
    title_match_ratio: float = Field(
        default=0.75,
        description="Share of significant title words a candidate must contain.",
    )

    racing_enabled: bool = Field(
        default=True,
        description="Race the top candidates through the racing worker.",
    )
    racer_url: Optional[str] = Field(
        default=None,
        description="Racing worker endpoint (POST). Racing is off when unset.",
    )
    race_timeout_seconds: float = Field(
        default=5.0,
        description="Fail-fast timeout for the racing worker.",
    )
    race_per_source: int = Field(
        default=5,
        description="Top candidates per source sent to the racer.",
    )
    race_source_count: int = Field(
        default=2,
        description="Number of top-ranked sources contributing to a race.",
    )

    addon_timeout_seconds: float = Field(
        default=8.0,
        description="Per-addon request timeout.",
    )
    probe_timeout_seconds: float = Field(
        default=3.0,
        description="Liveness probe (HEAD) timeout for stale session entries.",
    )
    freshness_window_seconds: int = Field(
        default=3600,
        description="Session entries younger than this are reused without a probe.",
    )
    refresh_delay_seconds: float = Field(
        default=3.0,
        description="Delay before the background candidate refresh on a fresh hit.",
    )
    preload_threshold: float = Field(
        default=0.9,
        description="Playback progress that triggers next-episode preloading.",
    )

    @field_validator("quality_ceiling")
    @classmethod
    def _validate_quality_ceiling(cls, v: str) -> str:
        QualityTier.from_label(v)
        return v

    @field_validator(
        "race_timeout_seconds",
        "addon_timeout_seconds",
        "probe_timeout_seconds",
    )
    @classmethod
    def _validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("preload_threshold", "title_match_ratio")
    @classmethod
    def _validate_ratio(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("must be in (0, 1]")
        return v

    @field_validator("race_per_source", "race_source_count")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @property
    def ceiling_tier(self) -> QualityTier:
        return QualityTier.from_label(self.quality_ceiling)

    @property
    def racing_active(self) -> bool:
        return self.racing_enabled and bool(self.racer_url)

    def ranking_policy(self, sticky_source: str | None = None) -> RankingPolicy:
        return RankingPolicy(
            quality_ceiling=self.ceiling_tier,
            preferred_source=self.preferred_source,
            sticky_source=sticky_source,
        )


def _flat_or_nested(section: str, key: str, flat: str | None = None) -> AliasChoices:
    """Accept ``<section>_<key>`` (or ``flat``) as well as ``section.key``."""
    return AliasChoices(flat or f"{section}_{key}", AliasPath(section, key))


class AppConfig(BaseModel):
    """Validated configuration the whole process runs on.

    Input is the sectioned YAML shape (http, logging, cache, tmdb,
    playback, addons); flat names like ``log_level`` are accepted too.
    Layer precedence is handled in ``load.py``.
    """

    app_name: str = Field(default="fluxplay", description="Bound to every log event.")
    environment: Environment = Field(
        default="dev",
        description="dev/test/prod; prod switches the log renderer to JSON.",
    )

    http_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        validation_alias=_flat_or_nested("http", "timeout_seconds"),
        description="Default HTTP timeout; per-call timeouts override it.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=_flat_or_nested("http", "follow_redirects"),
    )
    http_user_agent: str = Field(
        default="fluxplay/0.1.0",
        validation_alias=_flat_or_nested("http", "user_agent"),
        description="User-Agent for metadata and racer requests.",
    )

    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=_flat_or_nested("logging", "level", flat="log_level"),
    )
    # None until _fill_log_format runs.
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=_flat_or_nested("logging", "format", flat="log_format"),
    )

    cache_dir: Path = Field(
        default=Path("./.cache/fluxplay"),
        validation_alias=_flat_or_nested("cache", "dir"),
        description="Directory of the on-disk metadata cache.",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        validation_alias=_flat_or_nested("cache", "ttl_seconds"),
        description="Metadata cache TTL; 0 keeps entries forever.",
    )

    tmdb_api_key: Optional[str] = Field(
        default=None,
        validation_alias=_flat_or_nested("tmdb", "api_key"),
        description="TMDB API key; without it the IMDb suggest API is used.",
    )
    tmdb_language: str = Field(
        default="en-US",
        validation_alias=_flat_or_nested("tmdb", "language"),
        description="TMDB locale for titles used in candidate matching.",
    )

    addons: list[AddonSourceConfig] = Field(default_factory=_default_addons)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _expand_cache_dir(cls, v: Any) -> Path:
        return _as_path(v)

    @model_validator(mode="after")
    def _fill_log_format(self) -> AppConfig:
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    @property
    def enabled_sources(self) -> list[AddonSource]:
        return [a.to_source() for a in self.addons if a.enabled]

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Sectioned view as written in config.yaml. The TMDB key is left out."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "dir": str(self.cache_dir),
                "ttl_seconds": self.cache_ttl_seconds,
            },
            "tmdb": {"language": self.tmdb_language},
            "addons": [a.model_dump(mode="json") for a in self.addons],
            "playback": self.playback.model_dump(mode="json"),
        }


class EnvOverrides(BaseSettings):
    """``FLUXPLAY_*`` environment variables, one per flat config key.

    Only variables that are set survive ``to_update_dict``, so an unset
    variable never masks a YAML value. Example: ``FLUXPLAY_RACER_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLUXPLAY_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_dir: Optional[Path] = None
    cache_ttl_seconds: Optional[int] = None

    tmdb_api_key: Optional[str] = None
    tmdb_language: Optional[str] = None

    racer_url: Optional[str] = None
    racing_enabled: Optional[bool] = None
    preferred_source: Optional[str] = None
    quality_ceiling: Optional[str] = None

    def to_update_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
