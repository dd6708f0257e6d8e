"""FastAPI application factory.

``create_app`` only declares routes and middleware. Clients, caches and
services are built in ``composition.lifespan``.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from fluxplay.infrastructure.config import AppConfig
from fluxplay.interfaces.app_state import AppState
from fluxplay.interfaces.composition import lifespan

log = structlog.get_logger(__name__)

probes = APIRouter(tags=["probes"])


@probes.get("/healthz")
async def healthz(request: Request) -> dict[str, str | list[str]]:
    """Process liveness plus the addon sources that will be queried."""
    config: AppConfig = request.app.state.config
    return {"status": "ok", "addons": [s.name for s in config.enabled_sources]}


@probes.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """200 once the lifespan has wired the orchestrator, 503 before."""
    if getattr(request.app.state, "orchestrator", None) is None:
        return JSONResponse({"status": "not_ready"}, status_code=503)
    return JSONResponse({"status": "ready"})


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        log.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            query=str(request.url.query),
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
            client_host=request.client.host if request.client else None,
        )


def create_app(config: AppConfig) -> FastAPI:
    app = FastAPI(
        title="fluxplay",
        description="Stream resolution and playback session service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state = AppState()
    app.state.config = config

    from fluxplay.interfaces.api.playback.router import router as playback_router
    from fluxplay.interfaces.api.stats.router import router as stats_router

    for router in (probes, playback_router, stats_router):
        app.include_router(router, prefix="/api/v1")
    app.middleware("http")(log_requests)

    return app
