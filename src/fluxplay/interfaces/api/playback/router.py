"""Playback API endpoints driven by the player UI."""

from __future__ import annotations

from typing import Any, Optional, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fluxplay.domain.entities.errors import (
    CandidatesExhaustedError,
    NoActiveSessionError,
    NoCandidatesError,
    PlaybackError,
    SessionClosedError,
)
from fluxplay.domain.entities.playback import (
    Candidate,
    ContentIdentity,
    ResolvedStream,
    WatchRecord,
)
from fluxplay.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/playback", tags=["playback"])

# User-visible error -> (HTTP status, error code)
_ERROR_STATUS: dict[type[PlaybackError], tuple[int, str]] = {
    NoCandidatesError: (404, "no_candidates"),
    CandidatesExhaustedError: (410, "candidates_exhausted"),
    SessionClosedError: (409, "session_closed"),
    NoActiveSessionError: (409, "no_active_session"),
}


class ResolveRequest(BaseModel):
    external_id: str = Field(min_length=1, description="IMDb (tt...) or tmdb:<id>.")
    season: Optional[int] = Field(default=None, ge=1)
    episode: Optional[int] = Field(default=None, ge=1)

    def to_identity(self) -> ContentIdentity:
        if self.season is None and self.episode is None:
            return ContentIdentity.for_movie(self.external_id)
        return ContentIdentity.for_series(self.external_id, self.season, self.episode)


class SelectRequest(BaseModel):
    url: str = Field(min_length=1)


class ProgressRequest(BaseModel):
    time: float = Field(ge=0)
    duration: float = Field(ge=0)


def _error_response(exc: PlaybackError) -> JSONResponse:
    status, code = _ERROR_STATUS.get(type(exc), (500, "playback_error"))
    log.info("playback_error_response", error=code, status=status)
    return JSONResponse(
        status_code=status,
        content={"error": code, "message": exc.message},
    )


def _format_candidate(c: Candidate) -> dict[str, Any]:
    return {
        "title": c.title,
        "url": c.url,
        "source": c.source,
        "quality": c.quality.label,
    }


def _format_resolved(stream: ResolvedStream) -> dict[str, Any]:
    return {
        "stream_id": stream.identity.stream_id,
        "url": stream.url,
        "candidate": (
            _format_candidate(stream.candidate) if stream.candidate else None
        ),
        "from_session_cache": stream.from_session_cache,
        "raced": stream.raced,
    }


def _format_record(r: WatchRecord) -> dict[str, Any]:
    return {
        "stream_id": r.identity.stream_id,
        "title": r.title,
        "progress": r.progress,
        "updated_at": r.updated_at,
    }


@router.post("/resolve")
async def resolve(request: Request, body: ResolveRequest) -> JSONResponse:
    """Resolve a movie or episode to a playable URL."""
    state = cast(AppState, request.app.state)
    try:
        stream = await state.orchestrator.resolve(body.to_identity())
    except PlaybackError as e:
        return _error_response(e)
    return JSONResponse(content=_format_resolved(stream))


@router.get("/candidates")
async def candidates(request: Request) -> JSONResponse:
    """Ranked candidates of the active session."""
    state = cast(AppState, request.app.state)
    try:
        items = state.orchestrator.list_candidates()
    except PlaybackError as e:
        return _error_response(e)
    return JSONResponse(
        content={
            "candidates": [_format_candidate(c) for c in items],
            "count": len(items),
        }
    )


@router.post("/select")
async def select(request: Request, body: SelectRequest) -> JSONResponse:
    """Manually switch to one of the listed candidates."""
    state = cast(AppState, request.app.state)
    try:
        items = state.orchestrator.list_candidates()
        candidate = next((c for c in items if c.url == body.url), None)
        if candidate is None:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "unknown_candidate",
                    "message": "URL is not a candidate of the active session.",
                },
            )
        stream = await state.orchestrator.select_candidate(candidate)
    except PlaybackError as e:
        return _error_response(e)
    return JSONResponse(content=_format_resolved(stream))


@router.post("/playing")
async def playing(request: Request) -> JSONResponse:
    """Player started rendering the resolved URL."""
    state = cast(AppState, request.app.state)
    try:
        await state.orchestrator.begin_playback()
    except PlaybackError as e:
        return _error_response(e)
    return JSONResponse(content=state.orchestrator.snapshot())


@router.post("/progress")
async def progress(request: Request, body: ProgressRequest) -> JSONResponse:
    """Playback position report (drives history and next-episode preload)."""
    state = cast(AppState, request.app.state)
    try:
        ratio = await state.orchestrator.on_progress(body.time, body.duration)
    except PlaybackError as e:
        return _error_response(e)
    return JSONResponse(
        content={"progress": ratio, "state": state.orchestrator.state.value}
    )


@router.post("/error")
async def playback_error(request: Request) -> JSONResponse:
    """The active URL failed; fall back to the next candidate."""
    state = cast(AppState, request.app.state)
    try:
        stream = await state.orchestrator.report_playback_error()
    except PlaybackError as e:
        return _error_response(e)
    return JSONResponse(content=_format_resolved(stream))


@router.get("/next-episode")
async def next_episode(request: Request) -> JSONResponse:
    """Next sequential episode of the active series (null when none)."""
    state = cast(AppState, request.app.state)
    try:
        nxt = state.orchestrator.next_episode()
    except PlaybackError as e:
        return _error_response(e)
    if nxt is None:
        return JSONResponse(content={"next": None})
    return JSONResponse(
        content={
            "next": {
                "external_id": nxt.external_id,
                "season": nxt.season,
                "episode": nxt.episode,
                "stream_id": nxt.stream_id,
            }
        }
    )


@router.post("/close")
async def close(request: Request) -> JSONResponse:
    """End the playback session (caches are kept)."""
    state = cast(AppState, request.app.state)
    await state.orchestrator.close()
    return JSONResponse(content=state.orchestrator.snapshot())


@router.get("/state")
async def playback_state(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    return JSONResponse(content=state.orchestrator.snapshot())


@router.get("/history")
async def history(request: Request, limit: int = 20) -> JSONResponse:
    """Recently watched items, newest first."""
    state = cast(AppState, request.app.state)
    records = await state.history.recent(limit=max(1, min(limit, 200)))
    return JSONResponse(
        content={"history": [_format_record(r) for r in records], "count": len(records)}
    )
