"""Shared test fixtures for the fluxplay test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from fluxplay.domain.entities.playback import (
    AddonSource,
    Candidate,
    ContentIdentity,
    MediaMetadata,
    QualityTier,
    SeasonInfo,
)

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie_identity() -> ContentIdentity:
    return ContentIdentity.for_movie("tt0133093")


@pytest.fixture()
def episode_identity() -> ContentIdentity:
    return ContentIdentity.for_series("tt0903747", 1, 2)


@pytest.fixture()
def sources() -> list[AddonSource]:
    return [
        AddonSource(name="WebStreamer", base_url="https://webstreamr.example"),
        AddonSource(name="Nuvio", base_url="https://nuvio.example"),
    ]


@pytest.fixture()
def series_metadata() -> MediaMetadata:
    """Two seasons: 7 + 13 episodes."""
    return MediaMetadata(
        external_id="tt0903747",
        title="Breaking Bad",
        category="series",
        seasons=(
            SeasonInfo(season_number=1, episode_count=7),
            SeasonInfo(season_number=2, episode_count=13),
        ),
    )


@pytest.fixture()
def candidate() -> Candidate:
    return Candidate(
        title="The Matrix 1080p WEB",
        url="https://cdn.example/matrix-1080.mp4",
        source="WebStreamer",
        quality=QualityTier.P1080,
    )


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


@pytest.fixture()
def mock_addon_client() -> AsyncMock:
    """Mock AddonClientPort (no streams anywhere)."""
    client = AsyncMock()
    client.fetch = AsyncMock(return_value=[])
    return client


@pytest.fixture()
def mock_metadata() -> AsyncMock:
    """Mock MetadataPort (unknown ids)."""
    metadata = AsyncMock()
    metadata.lookup = AsyncMock(return_value=None)
    return metadata


@pytest.fixture()
def mock_player() -> AsyncMock:
    """Mock PlayerPort."""
    player = AsyncMock()
    player.play = AsyncMock()
    player.pause = AsyncMock()
    player.stop = AsyncMock()
    return player
