"""Port for the video render engine."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PlayerPort(Protocol):
    """Control surface of the external player.

    Playback errors and progress flow back through
    ``PlaybackOrchestrator.report_playback_error`` and ``on_progress``.
    """

    async def play(self, url: str) -> None: ...

    async def pause(self) -> None: ...

    async def stop(self) -> None: ...
