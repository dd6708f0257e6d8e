"""Port for the user-data (watch history) collaborator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fluxplay.domain.entities.playback import ContentIdentity, WatchRecord


@runtime_checkable
class WatchHistoryPort(Protocol):
    async def record(
        self,
        identity: ContentIdentity,
        *,
        title: str = "",
        progress: float | None = None,
    ) -> WatchRecord: ...

    async def recent(self, limit: int = 20) -> list[WatchRecord]: ...
