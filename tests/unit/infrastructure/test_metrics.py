"""Tests for the in-memory metrics collector."""

from __future__ import annotations

from fluxplay.infrastructure.metrics import MetricsCollector


class TestMetricsCollector:
    def test_addon_fetch(self) -> None:
        m = MetricsCollector()
        m.record_addon_fetch("Nuvio", 2_000_000, 4, success=True)
        m.record_addon_fetch("Nuvio", 4_000_000, 0, success=False)
        snap = m.snapshot()["addons"]["Nuvio"]
        assert snap == {
            "requests": 2,
            "successes": 1,
            "failures": 1,
            "total_candidates": 4,
            "avg_duration_ms": 3.0,
        }

    def test_race(self) -> None:
        m = MetricsCollector()
        m.record_race(5, 100)
        m.record_race(5, 300)
        m.record_race(3, None)
        race = m.snapshot()["race"]
        assert race["races"] == 3
        assert race["wins"] == 2
        assert race["fallbacks"] == 1
        assert race["total_urls"] == 13
        assert race["avg_winner_latency_ms"] == 200.0

    def test_session_hits(self) -> None:
        m = MetricsCollector()
        m.record_session_hit(revalidated=False)
        m.record_session_hit(revalidated=True)
        assert m.snapshot()["session_cache"] == {"hits": 2, "revalidated": 1}

    def test_empty_snapshot(self) -> None:
        snap = MetricsCollector().snapshot()
        assert snap["addons"] == {}
        assert snap["race"]["avg_winner_latency_ms"] == 0.0
        assert snap["uptime_seconds"] >= 0
