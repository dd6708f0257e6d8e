"""Port for the remote latency-racing worker."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fluxplay.domain.entities.playback import RaceResult


@runtime_checkable
class StreamRacerPort(Protocol):
    """Races candidate URLs remotely and reports a single winner."""

    async def race(
        self, urls: list[str], *, timeout: float
    ) -> RaceResult | None:
        """Return the winner, or None on any failure."""
        ...
