"""Port for last-played URL persistence (instant resume)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fluxplay.domain.entities.playback import ContentIdentity, SessionEntry


@runtime_checkable
class SessionStorePort(Protocol):
    """Passive keyed store: overwrite on store, no TTL eviction."""

    async def lookup(self, identity: ContentIdentity) -> SessionEntry | None: ...

    async def store(
        self,
        identity: ContentIdentity,
        url: str,
        *,
        selected_at: float | None = None,
    ) -> SessionEntry: ...

    async def invalidate(self, identity: ContentIdentity) -> bool: ...

    async def clear(self) -> None: ...
