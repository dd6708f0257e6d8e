"""Runtime metrics endpoint."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from fluxplay.interfaces.app_state import AppState

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("")
async def stats(request: Request) -> JSONResponse:
    """Return in-memory runtime metrics.

    Includes per-addon fetch stats, race stats, session-cache hits,
    metadata cache counters and the sizes of the in-memory caches.
    """
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    aggregator = getattr(state, "aggregator", None)
    session_store = getattr(state, "session_store", None)
    data["caches"] = {
        "candidate_sets": len(aggregator) if aggregator is not None else 0,
        "session_entries": len(session_store) if session_store is not None else 0,
    }

    cache = getattr(state, "cache", None)
    if cache is not None:
        data["metadata_cache"] = cache.stats()

    orchestrator = getattr(state, "orchestrator", None)
    if orchestrator is not None:
        data["playback"] = orchestrator.snapshot()

    return JSONResponse(content=data)
