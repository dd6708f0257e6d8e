"""Tests for title-match filtering."""

from __future__ import annotations

from fluxplay.domain.entities.playback import Candidate
from fluxplay.infrastructure.ranking.title_matcher import (
    filter_by_title_match,
    is_title_match,
    match_ratio,
    normalize_title,
    significant_words,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _c(title: str, source: str = "WebStreamer") -> Candidate:
    return Candidate(
        title=title, url=f"https://cdn.example/{len(title)}", source=source
    )


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


class TestNormalizeTitle:
    def test_lowercase_and_separators(self) -> None:
        assert normalize_title("Spider-Man: No Way Home") == "spider man no way home"

    def test_transliterates(self) -> None:
        assert normalize_title("Amélie") == "amelie"

    def test_collapses_whitespace(self) -> None:
        assert normalize_title("  The   Matrix ") == "the matrix"


class TestSignificantWords:
    def test_drops_stop_words(self) -> None:
        assert significant_words("The Lord of the Rings") == ["lord", "rings"]

    def test_only_stop_words(self) -> None:
        assert significant_words("The It") == []


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class TestIsTitleMatch:
    def test_episode_release_matches_show(self) -> None:
        assert is_title_match("Show S01E02 1080p", "Show")

    def test_short_title_requires_every_word(self) -> None:
        assert not is_title_match("Breaking News 1080p", "Breaking Bad")
        assert is_title_match("Breaking.Bad.S01E01.720p", "Breaking Bad")

    def test_long_title_tolerates_missing_word(self) -> None:
        target = "Harry Potter Philosopher Stone"
        # 3 of 4 significant words = 0.75
        assert is_title_match("Harry Potter Philosopher 1080p", target)
        assert not is_title_match("Harry Potter 1080p", target)

    def test_single_character_word_needs_exact_token(self) -> None:
        assert not is_title_match("Movie x264 1080p", "X")
        assert is_title_match("X 2022 1080p", "X")

    def test_longer_word_matches_inside_token(self) -> None:
        assert is_title_match("Derrys.Story.720p", "Derry Story")

    def test_no_significant_words_passes(self) -> None:
        assert is_title_match("anything at all", "The It")

    def test_custom_ratio(self) -> None:
        target = "alpha beta gamma delta"
        assert is_title_match("alpha beta", target, min_ratio=0.5)
        assert not is_title_match("alpha beta", target)


class TestMatchRatio:
    def test_ratio(self) -> None:
        assert match_ratio("alpha beta", "alpha beta gamma delta") == 0.5

    def test_empty_target(self) -> None:
        assert match_ratio("whatever", "the") == 1.0


# ---------------------------------------------------------------------------
# filter_by_title_match
# ---------------------------------------------------------------------------


class TestFilterByTitleMatch:
    def test_keeps_matching_in_order(self) -> None:
        items = [_c("Show S01E02 1080p"), _c("Other Thing 720p"), _c("Show 4K")]
        kept = filter_by_title_match(items, "Show")
        assert [c.title for c in kept] == ["Show S01E02 1080p", "Show 4K"]

    def test_missing_target_disables_filter(self) -> None:
        items = [_c("Completely Unrelated")]
        assert filter_by_title_match(items, None) == items

    def test_empty_input(self) -> None:
        assert filter_by_title_match([], "Show") == []
