"""Tests for playback domain entities."""

from __future__ import annotations

import dataclasses

import pytest

from fluxplay.domain.entities import (
    CandidatesExhaustedError,
    ContentIdentity,
    MediaMetadata,
    NoCandidatesError,
    PlaybackError,
    QualityTier,
    SeasonInfo,
    SessionEntry,
)

# ---------------------------------------------------------------------------
# ContentIdentity
# ---------------------------------------------------------------------------


class TestContentIdentity:
    def test_movie_stream_id(self) -> None:
        identity = ContentIdentity.for_movie("tt0133093")
        assert identity.stream_id == "tt0133093"
        assert identity.cache_key == "tt0133093"
        assert identity.category == "movie"
        assert not identity.is_series

    def test_series_stream_id(self) -> None:
        identity = ContentIdentity.for_series("tt0903747", 2, 5)
        assert identity.stream_id == "tt0903747:2:5"
        assert identity.category == "series"
        assert identity.is_series

    def test_series_defaults_to_first_episode(self) -> None:
        identity = ContentIdentity.for_series("tt0903747")
        assert (identity.season, identity.episode) == (1, 1)
        assert identity.stream_id == "tt0903747:1:1"

    def test_equality_is_exact(self) -> None:
        a = ContentIdentity.for_series("tt1", 1, 2)
        assert a == ContentIdentity.for_series("tt1", 1, 2)
        assert a != ContentIdentity.for_series("tt1", 1, 3)
        assert a != ContentIdentity.for_movie("tt1")

    def test_hashable_and_frozen(self) -> None:
        identity = ContentIdentity.for_movie("tt1")
        assert {identity: 1}[ContentIdentity.for_movie("tt1")] == 1
        with pytest.raises(dataclasses.FrozenInstanceError):
            identity.season = 3  # type: ignore[misc]


# ---------------------------------------------------------------------------
# QualityTier
# ---------------------------------------------------------------------------


class TestQualityTier:
    def test_ordering(self) -> None:
        assert (
            QualityTier.SD
            < QualityTier.P480
            < QualityTier.P720
            < QualityTier.P1080
            < QualityTier.UHD
        )

    @pytest.mark.parametrize(
        ("label", "tier"),
        [
            ("SD", QualityTier.SD),
            ("480p", QualityTier.P480),
            ("720P", QualityTier.P720),
            ("1080p", QualityTier.P1080),
            ("4K", QualityTier.UHD),
            ("2160p", QualityTier.UHD),
            ("uhd", QualityTier.UHD),
        ],
    )
    def test_from_label(self, label: str, tier: QualityTier) -> None:
        assert QualityTier.from_label(label) is tier

    def test_unknown_label_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown quality label"):
            QualityTier.from_label("8k")

    def test_label(self) -> None:
        assert QualityTier.UHD.label == "4K"
        assert QualityTier.P720.label == "720p"


# ---------------------------------------------------------------------------
# SessionEntry / MediaMetadata
# ---------------------------------------------------------------------------


class TestSessionEntry:
    def test_age(self) -> None:
        entry = SessionEntry(url="https://x/a.mp4", selected_at=1000.0)
        assert entry.age_seconds(1600.0) == 600.0


class TestNextEpisode:
    @pytest.fixture()
    def metadata(self) -> MediaMetadata:
        return MediaMetadata(
            external_id="tt1",
            title="Show",
            category="series",
            seasons=(
                SeasonInfo(season_number=1, episode_count=3),
                SeasonInfo(season_number=2, episode_count=2),
            ),
        )

    def test_same_season(self, metadata: MediaMetadata) -> None:
        assert metadata.next_episode(1, 1) == (1, 2)

    def test_crosses_into_next_season(self, metadata: MediaMetadata) -> None:
        assert metadata.next_episode(1, 3) == (2, 1)

    def test_last_episode_of_series(self, metadata: MediaMetadata) -> None:
        assert metadata.next_episode(2, 2) is None

    def test_no_season_structure(self) -> None:
        metadata = MediaMetadata(external_id="tt1", title="Show", category="series")
        assert metadata.next_episode(1, 1) is None


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_default_messages_are_user_visible(self) -> None:
        assert NoCandidatesError().message == "No streams available for this title."
        assert (
            CandidatesExhaustedError().message
            == "Unable to play video. Please try another source."
        )

    def test_custom_message(self) -> None:
        err = NoCandidatesError("nothing for tt1")
        assert err.message == "nothing for tt1"
        assert str(err) == "nothing for tt1"

    def test_hierarchy(self) -> None:
        assert issubclass(NoCandidatesError, PlaybackError)
        assert issubclass(CandidatesExhaustedError, PlaybackError)
