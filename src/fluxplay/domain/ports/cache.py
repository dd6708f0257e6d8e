"""Cache port - persistent key-value store for metadata lookups."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Async key-value cache with per-entry TTL.

    Backs catalog metadata only; ranked candidate sets and session
    entries live in process memory and are owned by their services.

    Adapters support async context-manager semantics::

        async with cache:
            await cache.set("tmdb:find:tt0133093", payload, ttl=86_400)
    """

    async def get(self, key: str) -> Any:
        """Return the stored value, or None when missing/expired."""
        ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
