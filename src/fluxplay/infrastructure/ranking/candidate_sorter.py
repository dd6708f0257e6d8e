"""Candidate ranking for playback.

Ordering, each stage only breaking ties left by the previous one:

1. sticky source (the source of the user's last manual pick)
2. preferred source
3. quality at or below the ceiling before quality above it
4. compliant: highest quality first; non-compliant: lowest quality first

Remaining ties keep their merge order (``list.sort`` is stable), so the
result depends only on candidate content, never on network arrival order.
"""

from __future__ import annotations

from fluxplay.domain.entities.playback import Candidate, RankingPolicy


class CandidateSorter:
    """Sorts candidates under a fixed :class:`RankingPolicy` snapshot."""

    def __init__(self, policy: RankingPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> RankingPolicy:
        return self._policy

    def sort_key(self, candidate: Candidate) -> tuple[int, int, int, int]:
        """Ascending key; smaller sorts first."""
        policy = self._policy
        sticky = (
            0
            if policy.sticky_source and candidate.source == policy.sticky_source
            else 1
        )
        preferred = (
            0
            if policy.preferred_source and candidate.source == policy.preferred_source
            else 1
        )
        compliant = candidate.quality <= policy.quality_ceiling
        # Compliant: closest to the ceiling from below (descending quality).
        # Non-compliant: closest to the ceiling from above (ascending quality).
        distance = -int(candidate.quality) if compliant else int(candidate.quality)
        return sticky, preferred, 0 if compliant else 1, distance

    def sort(self, candidates: list[Candidate]) -> list[Candidate]:
        """Return a new, ranked list."""
        return sorted(candidates, key=self.sort_key)
