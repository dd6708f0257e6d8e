"""Playback error taxonomy.

``SourceUnavailable``, ``DecodeError`` and ``RaceUnavailable`` never leave
the component that raises them; they are absorbed and logged there.
Only the user-visible errors below ``PlaybackError`` reach callers.
"""

from __future__ import annotations


class PlaybackError(Exception):
    """Base error for playback use cases. ``message`` is user-visible."""

    message = "Playback failed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class SourceUnavailable(PlaybackError):
    """Addon unreachable, timed out or answered with a non-200 status."""


class DecodeError(PlaybackError):
    """Addon response or stream URL could not be decoded."""


class RaceUnavailable(PlaybackError):
    """Racing worker unreachable or returned a malformed answer."""


class NoCandidatesError(PlaybackError):
    message = "No streams available for this title."


class CandidatesExhaustedError(PlaybackError):
    message = "Unable to play video. Please try another source."


class SessionClosedError(PlaybackError):
    message = "Playback session was closed."


class NoActiveSessionError(PlaybackError):
    message = "No active playback session."
