from .errors import (
    CandidatesExhaustedError,
    DecodeError,
    NoActiveSessionError,
    NoCandidatesError,
    PlaybackError,
    RaceUnavailable,
    SessionClosedError,
    SourceUnavailable,
)
from .playback import (
    AddonSource,
    Candidate,
    ContentIdentity,
    MediaCategory,
    MediaMetadata,
    PlaybackState,
    QualityTier,
    RaceResult,
    RankingPolicy,
    ResolvedStream,
    SeasonInfo,
    SessionEntry,
    WatchRecord,
)

__all__ = [
    "AddonSource",
    "Candidate",
    "CandidatesExhaustedError",
    "ContentIdentity",
    "DecodeError",
    "MediaCategory",
    "MediaMetadata",
    "NoActiveSessionError",
    "NoCandidatesError",
    "PlaybackError",
    "PlaybackState",
    "QualityTier",
    "RaceResult",
    "RaceUnavailable",
    "RankingPolicy",
    "ResolvedStream",
    "SeasonInfo",
    "SessionClosedError",
    "SessionEntry",
    "SourceUnavailable",
    "WatchRecord",
]
