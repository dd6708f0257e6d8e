"""Port for catalog metadata lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fluxplay.domain.entities.playback import MediaMetadata


@runtime_checkable
class MetadataPort(Protocol):
    """Async interface to the metadata/catalog collaborator."""

    async def lookup(self, external_id: str) -> MediaMetadata | None:
        """Return title, category and season structure, or None if unknown."""
        ...
