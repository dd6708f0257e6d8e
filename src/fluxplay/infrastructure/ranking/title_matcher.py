"""Title-match filtering for addon candidates.

Pure transformation logic — no I/O, no framework dependencies.
Addons answer by id, but some return streams for the wrong title
(sequels, shared ids, mislabelled uploads). A candidate is kept only
when its title covers the target title's significant words.
"""

from __future__ import annotations

import re

import structlog
from unidecode import unidecode as _unidecode

from fluxplay.domain.entities.playback import Candidate

log = structlog.get_logger(__name__)

# Anything that is not a lowercase ASCII letter or digit becomes a separator.
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "of", "to", "in", "on", "at", "by",
        "for", "with", "it", "is", "chapter", "part", "season", "episode",
        "s", "e",
    }
)

# Short titles need every word; longer ones tolerate a missing word or two.
SHORT_TITLE_WORDS = 2
DEFAULT_MATCH_RATIO = 0.75


def normalize_title(text: str) -> str:
    """Transliterate to ASCII, lowercase, non-alphanumerics to single spaces."""
    text = _NON_ALNUM_RE.sub(" ", _unidecode(text).lower())
    return " ".join(text.split())


def significant_words(title: str) -> list[str]:
    """Normalised words of *title* minus stop words, in order."""
    return [w for w in normalize_title(title).split() if w not in STOP_WORDS]


def _word_matches(word: str, tokens: set[str]) -> bool:
    # "x" must not match inside "x264"; longer words may match
    # inflections ("derry" in "derrys").
    if len(word) == 1:
        return word in tokens
    return any(word in token for token in tokens)


def match_ratio(candidate_title: str, target_title: str) -> float:
    """Share of the target's significant words found in *candidate_title*.

    Returns 1.0 when the target has no significant words.
    """
    target_words = significant_words(target_title)
    if not target_words:
        return 1.0
    tokens = set(normalize_title(candidate_title).split())
    matched = sum(1 for w in target_words if _word_matches(w, tokens))
    return matched / len(target_words)


def is_title_match(
    candidate_title: str,
    target_title: str,
    *,
    min_ratio: float = DEFAULT_MATCH_RATIO,
) -> bool:
    """Exact coverage for targets of ≤2 significant words, *min_ratio* otherwise."""
    target_words = significant_words(target_title)
    if not target_words:
        return True
    ratio = match_ratio(candidate_title, target_title)
    if len(target_words) <= SHORT_TITLE_WORDS:
        return ratio >= 1.0
    return ratio >= min_ratio


def filter_by_title_match(
    candidates: list[Candidate],
    target_title: str | None,
    *,
    min_ratio: float = DEFAULT_MATCH_RATIO,
) -> list[Candidate]:
    """Keep only candidates whose title matches *target_title*.

    If *target_title* is ``None`` (metadata lookup failed), all candidates
    pass through unchanged — better to return unfiltered than nothing.
    """
    if target_title is None:
        return candidates

    kept: list[Candidate] = []
    for c in candidates:
        if is_title_match(c.title, target_title, min_ratio=min_ratio):
            kept.append(c)
        else:
            log.debug(
                "title_match_filtered",
                candidate_title=c.title,
                source=c.source,
                ratio=round(match_ratio(c.title, target_title), 3),
            )

    log.info(
        "title_match_summary",
        target=target_title,
        total=len(candidates),
        kept=len(kept),
        dropped=len(candidates) - len(kept),
    )
    return kept
