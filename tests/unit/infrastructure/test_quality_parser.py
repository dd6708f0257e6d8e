"""Tests for quality tier detection."""

from __future__ import annotations

import pytest

from fluxplay.domain.entities.playback import QualityTier
from fluxplay.infrastructure.ranking.quality_parser import parse_quality_tier


class TestParseQualityTier:
    @pytest.mark.parametrize(
        ("title", "tier"),
        [
            ("Movie 2160p HDR", QualityTier.UHD),
            ("Movie 4K WEB", QualityTier.UHD),
            ("Movie.1080p.BluRay", QualityTier.P1080),
            ("Movie 720P", QualityTier.P720),
            ("movie 480p", QualityTier.P480),
            ("Movie CAM", QualityTier.SD),
            ("", QualityTier.SD),
        ],
    )
    def test_tokens(self, title: str, tier: QualityTier) -> None:
        assert parse_quality_tier(title) is tier

    def test_higher_tier_wins_when_several_tokens(self) -> None:
        assert parse_quality_tier("1080p | 4k upscale") is QualityTier.UHD

    def test_multiline_addon_title(self) -> None:
        assert parse_quality_tier("WebStreamer\nMovie (2020)\n720p") is QualityTier.P720
