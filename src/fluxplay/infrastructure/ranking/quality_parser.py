"""Quality tier detection from free-text stream titles."""

from __future__ import annotations

from fluxplay.domain.entities.playback import QualityTier

# Ordered: the first matching token wins, so higher tiers are checked first.
_QUALITY_TOKENS: tuple[tuple[str, QualityTier], ...] = (
    ("2160p", QualityTier.UHD),
    ("4k", QualityTier.UHD),
    ("1080p", QualityTier.P1080),
    ("720p", QualityTier.P720),
    ("480p", QualityTier.P480),
)


def parse_quality_tier(title: str) -> QualityTier:
    """Case-insensitive substring scan of *title*; SD when nothing matches."""
    lowered = title.lower()
    for token, tier in _QUALITY_TOKENS:
        if token in lowered:
            return tier
    return QualityTier.SD
