"""Race coordination: pick a capped shortlist and race it remotely."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import structlog

from fluxplay.domain.entities.playback import Candidate, RaceResult
from fluxplay.domain.ports.stream_racer import StreamRacerPort

log = structlog.get_logger(__name__)


class _RaceMetrics(Protocol):
    def record_race(self, url_count: int, latency_ms: int | None) -> None: ...


def select_race_set(
    candidates: Sequence[Candidate],
    per_source: int = 5,
    source_count: int = 2,
) -> list[str]:
    """Top *per_source* URLs from each of the first *source_count* sources.

    Sources are taken in order of first appearance in the ranked list, and
    URLs keep their ranked order, so the shortlist favours what ranking
    already favours.
    """
    sources: list[str] = []
    picked: dict[str, list[str]] = {}
    for c in candidates:
        if c.source not in picked:
            if len(sources) == source_count:
                continue
            sources.append(c.source)
            picked[c.source] = []
        urls = picked[c.source]
        if len(urls) < per_source and c.url not in urls:
            urls.append(c.url)
    return [url for source in sources for url in picked[source]]


class RaceCoordinator:
    """Delegates latency racing to the worker, or reports that it cannot.

    ``race`` returns None whenever racing is off, the shortlist is empty or
    the worker fails; callers fall back to the top-ranked candidate.
    """

    def __init__(
        self,
        *,
        racer: StreamRacerPort | None,
        enabled: bool = True,
        timeout_seconds: float = 5.0,
        per_source: int = 5,
        source_count: int = 2,
        metrics: _RaceMetrics | None = None,
    ) -> None:
        self._racer = racer
        self._enabled = enabled
        self._timeout = timeout_seconds
        self._per_source = per_source
        self._source_count = source_count
        self._metrics = metrics

    @property
    def enabled(self) -> bool:
        return self._enabled and self._racer is not None

    def select_race_set(self, candidates: Sequence[Candidate]) -> list[str]:
        return select_race_set(
            candidates,
            per_source=self._per_source,
            source_count=self._source_count,
        )

    async def race(
        self, urls: list[str], *, timeout: float | None = None
    ) -> RaceResult | None:
        racer = self._racer
        if not self._enabled or racer is None or not urls:
            log.debug("race_skipped", enabled=self.enabled, url_count=len(urls))
            return None

        result = await racer.race(
            urls, timeout=timeout if timeout is not None else self._timeout
        )
        if self._metrics is not None:
            self._metrics.record_race(
                len(urls), result.latency_ms if result is not None else None
            )
        return result

    async def race_candidates(
        self, candidates: Sequence[Candidate]
    ) -> RaceResult | None:
        """Race the capped shortlist of a ranked candidate list."""
        if not self.enabled:
            return None
        return await self.race(self.select_race_set(candidates))
