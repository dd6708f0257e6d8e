"""Port for querying one addon source."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fluxplay.domain.entities.playback import AddonSource, Candidate, ContentIdentity


@runtime_checkable
class AddonClientPort(Protocol):
    """Fetches candidate streams from a single addon source.

    Implementations MUST NOT raise: every failure collapses to ``[]``.
    """

    async def fetch(
        self, source: AddonSource, identity: ContentIdentity
    ) -> list[Candidate]: ...
