"""Local watch-history adapter.

Stands in for the user-data synchronisation layer: keeps the latest
record per content identity, newest first.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable

import structlog

from fluxplay.domain.entities.playback import ContentIdentity, WatchRecord

log = structlog.get_logger(__name__)


class InMemoryWatchHistory:
    """Implements ``WatchHistoryPort``."""

    def __init__(
        self,
        *,
        max_entries: int = 500,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._records: OrderedDict[ContentIdentity, WatchRecord] = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock
        self._lock = asyncio.Lock()

    async def record(
        self,
        identity: ContentIdentity,
        *,
        title: str = "",
        progress: float | None = None,
    ) -> WatchRecord:
        """Upsert the record for *identity*, keeping known progress/title."""
        async with self._lock:
            previous = self._records.pop(identity, None)
            if previous is not None:
                title = title or previous.title
                if progress is None:
                    progress = previous.progress
            rec = WatchRecord(
                identity=identity,
                title=title,
                progress=progress,
                updated_at=self._clock(),
            )
            self._records[identity] = rec
            while len(self._records) > self._max_entries:
                self._records.popitem(last=False)
        log.debug(
            "history_recorded",
            key=identity.cache_key,
            progress=None if progress is None else round(progress, 3),
        )
        return rec

    async def recent(self, limit: int = 20) -> list[WatchRecord]:
        async with self._lock:
            records = list(self._records.values())
        records.reverse()
        return records[:limit]
