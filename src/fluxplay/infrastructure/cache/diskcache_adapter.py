"""Diskcache adapter - SQLite-backed metadata cache, no daemon process."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional, TypeVar

import structlog
from diskcache import Cache as DiskCache

log = structlog.get_logger(__name__)

_T = TypeVar("_T")


class DiskcacheAdapter:
    """``CachePort`` over a ``diskcache.Cache`` directory.

    Holds catalog metadata (TMDB and IMDb lookups) across restarts.
    diskcache is synchronous, so every call runs in a worker thread and a
    semaphore caps concurrent SQLite access. ``ttl=0`` stores an entry
    without expiry.

    Args:
        directory: SQLite DB directory.
        ttl_seconds: TTL for ``set()`` calls that pass none.
        max_concurrent: Max parallel disk operations.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/fluxplay",
        ttl_seconds: int = 3600,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._disk: DiskCache | None = None
        self._io_slots = asyncio.Semaphore(max_concurrent)
        self._hits = 0
        self._misses = 0

    @property
    def is_open(self) -> bool:
        return self._disk is not None

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._disk is None:
            self._disk = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("metadata_cache_opened", directory=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        disk, self._disk = self._disk, None
        if disk is not None:
            await asyncio.to_thread(disk.close)
            log.info("metadata_cache_closed", directory=str(self.directory))

    async def _run(self, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        async with self._io_slots:
            return await asyncio.to_thread(fn, *args, **kwargs)

    def _opened(self) -> DiskCache:
        if self._disk is None:
            raise RuntimeError("Metadata cache is not open; use 'async with cache:'")
        return self._disk

    async def get(self, key: str) -> Optional[Any]:
        value = await self._run(self._opened().get, key, default=None)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        log.debug("metadata_cache_lookup", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        seconds = self.default_ttl if ttl is None else ttl
        await self._run(
            self._opened().set, key, value, expire=seconds if seconds > 0 else None
        )
        log.debug("metadata_cache_store", key=key, ttl=seconds)

    async def delete(self, key: str) -> bool:
        if self._disk is None:
            return False
        return bool(await self._run(self._disk.delete, key))

    async def clear(self) -> None:
        if self._disk is None:
            return
        removed = await self._run(self._disk.clear)
        log.warning("metadata_cache_cleared", entries=removed)

    def stats(self) -> dict[str, int]:
        """Lookup counters since startup."""
        return {"hits": self._hits, "misses": self._misses}
