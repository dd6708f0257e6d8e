"""Tests for the stats endpoint."""

from __future__ import annotations

from unittest.mock import MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from fluxplay.infrastructure.metrics import MetricsCollector
from fluxplay.interfaces.api.stats.router import router


def test_stats_with_full_state() -> None:
    app = FastAPI()
    app.include_router(router)
    metrics = MetricsCollector()
    metrics.record_addon_fetch("WebStreamer", 2_000_000, 4, success=True)
    app.state.metrics = metrics
    app.state.aggregator = [object(), object()]
    app.state.session_store = [object()]
    cache = MagicMock()
    cache.stats.return_value = {"hits": 3, "misses": 1}
    app.state.cache = cache
    orchestrator = MagicMock()
    orchestrator.snapshot.return_value = {"state": "idle"}
    app.state.orchestrator = orchestrator

    data = TestClient(app).get("/stats").json()

    assert data["addons"]["WebStreamer"]["successes"] == 1
    assert data["caches"] == {"candidate_sets": 2, "session_entries": 1}
    assert data["metadata_cache"] == {"hits": 3, "misses": 1}
    assert data["playback"] == {"state": "idle"}


def test_stats_without_components() -> None:
    app = FastAPI()
    app.include_router(router)

    data = TestClient(app).get("/stats").json()

    assert data == {"caches": {"candidate_sets": 0, "session_entries": 0}}
