"""In-memory session cache for instant resume.

One entry per content identity: the last URL that was successfully
selected and when. Freshness is judged by the caller; this store never
expires anything on its own.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import structlog

from fluxplay.domain.entities.playback import ContentIdentity, SessionEntry

log = structlog.get_logger(__name__)


class InMemorySessionCache:
    """Implements ``SessionStorePort`` with a lock-guarded dict.

    Entries are frozen dataclasses, so values handed out can never be
    mutated behind the store's back.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[ContentIdentity, SessionEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def lookup(self, identity: ContentIdentity) -> SessionEntry | None:
        async with self._lock:
            entry = self._entries.get(identity)
        log.debug("session_lookup", key=identity.cache_key, hit=entry is not None)
        return entry

    async def store(
        self,
        identity: ContentIdentity,
        url: str,
        *,
        selected_at: float | None = None,
    ) -> SessionEntry:
        """Overwrite the entry for *identity*."""
        entry = SessionEntry(
            url=url,
            selected_at=selected_at if selected_at is not None else self._clock(),
        )
        async with self._lock:
            self._entries[identity] = entry
        log.info("session_stored", key=identity.cache_key, url=url)
        return entry

    async def invalidate(self, identity: ContentIdentity) -> bool:
        async with self._lock:
            removed = self._entries.pop(identity, None) is not None
        log.info("session_invalidated", key=identity.cache_key, removed=removed)
        return removed

    async def clear(self) -> None:
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
        log.warning("session_cache_cleared", entries=count)

    def __len__(self) -> int:
        return len(self._entries)
