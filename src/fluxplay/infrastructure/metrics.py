"""Zero-impact in-memory performance metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop — no locks, no I/O, no external dependencies.

``time.perf_counter_ns()`` is used for timing (monotonic, nanosecond
resolution, near-zero overhead).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class AddonStats:
    """Accumulated statistics for a single addon source."""

    requests: int = 0
    successes: int = 0
    failures: int = 0
    total_candidates: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        avg_ms = (
            round(self.total_duration_ns / self.requests / 1_000_000, 1)
            if self.requests
            else 0.0
        )
        return {
            "requests": self.requests,
            "successes": self.successes,
            "failures": self.failures,
            "total_candidates": self.total_candidates,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class RaceStats:
    """Accumulated statistics for racing-worker calls."""

    races: int = 0
    wins: int = 0
    fallbacks: int = 0
    total_urls: int = 0
    total_latency_ms: int = 0

    def snapshot(self) -> dict[str, object]:
        avg_latency = round(self.total_latency_ms / self.wins, 1) if self.wins else 0.0
        return {
            "races": self.races,
            "wins": self.wins,
            "fallbacks": self.fallbacks,
            "total_urls": self.total_urls,
            "avg_winner_latency_ms": avg_latency,
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector.

    Thread-safety is not required — the async event loop is
    single-threaded, so plain integer increments are atomic enough.
    """

    _addons: dict[str, AddonStats] = field(default_factory=dict)
    _race: RaceStats = field(default_factory=RaceStats)
    _session_hits: int = 0
    _session_revalidations: int = 0
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_addon_fetch(
        self,
        name: str,
        duration_ns: int,
        candidate_count: int,
        *,
        success: bool,
    ) -> None:
        """Record one addon request."""
        stats = self._addons.get(name)
        if stats is None:
            stats = AddonStats()
            self._addons[name] = stats

        stats.requests += 1
        stats.total_duration_ns += duration_ns

        if success:
            stats.successes += 1
            stats.total_candidates += candidate_count
        else:
            stats.failures += 1

    def record_race(self, url_count: int, latency_ms: int | None) -> None:
        """Record one race; ``latency_ms=None`` means the race produced no winner."""
        self._race.races += 1
        self._race.total_urls += url_count
        if latency_ms is None:
            self._race.fallbacks += 1
        else:
            self._race.wins += 1
            self._race.total_latency_ms += latency_ms

    def record_session_hit(self, *, revalidated: bool) -> None:
        self._session_hits += 1
        if revalidated:
            self._session_revalidations += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        uptime_s = round(uptime_ns / 1_000_000_000, 1)

        return {
            "uptime_seconds": uptime_s,
            "addons": {
                name: stats.snapshot() for name, stats in sorted(self._addons.items())
            },
            "race": self._race.snapshot(),
            "session_cache": {
                "hits": self._session_hits,
                "revalidated": self._session_revalidations,
            },
        }
