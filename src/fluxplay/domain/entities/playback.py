"""Domain entities for stream resolution and playback sessions.

Pure value objects — no framework dependencies, no I/O.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

MediaCategory = Literal["movie", "series"]


class QualityTier(IntEnum):
    """Ranked quality tiers (higher value = better quality)."""

    SD = 0
    P480 = 1
    P720 = 2
    P1080 = 3
    UHD = 4

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> QualityTier:
        """Map a user-facing label ("1080p", "4K", ...) to a tier."""
        tier = _LABEL_TO_TIER.get(label.strip().lower())
        if tier is None:
            raise ValueError(f"Unknown quality label: {label!r}")
        return tier


_TIER_LABELS: dict[QualityTier, str] = {
    QualityTier.SD: "SD",
    QualityTier.P480: "480p",
    QualityTier.P720: "720p",
    QualityTier.P1080: "1080p",
    QualityTier.UHD: "4K",
}

_LABEL_TO_TIER: dict[str, QualityTier] = {
    "sd": QualityTier.SD,
    "480p": QualityTier.P480,
    "720p": QualityTier.P720,
    "1080p": QualityTier.P1080,
    "4k": QualityTier.UHD,
    "2160p": QualityTier.UHD,
    "uhd": QualityTier.UHD,
}


@dataclass(frozen=True)
class ContentIdentity:
    """A specific watchable unit: a movie, or one episode of a series.

    ``external_id`` is the id addon sources understand (IMDb ``tt…`` or
    ``tmdb:<id>``). Series identities always carry a season and episode.
    """

    external_id: str
    season: int | None = None
    episode: int | None = None

    @classmethod
    def for_movie(cls, external_id: str) -> ContentIdentity:
        return cls(external_id=external_id)

    @classmethod
    def for_series(
        cls,
        external_id: str,
        season: int | None = None,
        episode: int | None = None,
    ) -> ContentIdentity:
        """Series identity; season/episode default to 1 when unspecified."""
        return cls(
            external_id=external_id,
            season=season if season is not None else 1,
            episode=episode if episode is not None else 1,
        )

    @property
    def is_series(self) -> bool:
        return self.season is not None

    @property
    def category(self) -> MediaCategory:
        return "series" if self.is_series else "movie"

    @property
    def stream_id(self) -> str:
        """Addon stream id: ``tt123`` or ``tt123:<season>:<episode>``."""
        if not self.is_series:
            return self.external_id
        return f"{self.external_id}:{self.season}:{self.episode or 1}"

    @property
    def cache_key(self) -> str:
        return self.stream_id


@dataclass(frozen=True)
class AddonSource:
    """A Stremio-protocol addon serving ``/stream/<type>/<id>.json``."""

    name: str
    base_url: str
    enabled: bool = True


@dataclass(frozen=True)
class Candidate:
    """One discovered playable URL from one addon source."""

    title: str
    url: str
    source: str
    quality: QualityTier = QualityTier.SD


@dataclass(frozen=True)
class RankingPolicy:
    """Snapshot of the ranking preferences used for one resolution."""

    quality_ceiling: QualityTier = QualityTier.UHD
    preferred_source: str | None = None
    sticky_source: str | None = None


@dataclass(frozen=True)
class SessionEntry:
    """Last successfully selected URL for a content identity."""

    url: str
    selected_at: float  # epoch seconds

    def age_seconds(self, now: float) -> float:
        return now - self.selected_at


@dataclass(frozen=True)
class RaceResult:
    """Winner reported by the racing worker."""

    winning_url: str
    latency_ms: int


@dataclass(frozen=True)
class SeasonInfo:
    season_number: int
    episode_count: int


@dataclass(frozen=True)
class MediaMetadata:
    """Catalog facts needed for matching and next-episode computation."""

    external_id: str
    title: str
    category: MediaCategory = "movie"
    seasons: tuple[SeasonInfo, ...] = ()

    def next_episode(self, season: int, episode: int) -> tuple[int, int] | None:
        """Next sequential episode, crossing into the next season if needed."""
        current = next(
            (s for s in self.seasons if s.season_number == season), None
        )
        if current is not None and episode < current.episode_count:
            return season, episode + 1
        if any(s.season_number == season + 1 for s in self.seasons):
            return season + 1, 1
        return None


@dataclass(frozen=True)
class ResolvedStream:
    """Result of a resolution handed to the player."""

    identity: ContentIdentity
    url: str
    candidate: Candidate | None = None
    from_session_cache: bool = False
    raced: bool = False


@dataclass(frozen=True)
class WatchRecord:
    """One watch-history entry."""

    identity: ContentIdentity
    title: str = ""
    progress: float | None = None
    updated_at: float = 0.0


class PlaybackState(enum.Enum):
    """States of the playback orchestrator."""

    IDLE = "idle"
    RESOLVING = "resolving"
    RACING = "racing"
    RESOLVED = "resolved"
    PLAYING = "playing"
    NEXT_CANDIDATE = "next_candidate"
    FAILED = "failed"
    CLOSED = "closed"
