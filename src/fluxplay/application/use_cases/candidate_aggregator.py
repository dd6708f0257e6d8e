"""Candidate aggregation use case.

ContentIdentity -> parallel addon fetch -> merge -> dedup
-> title filter -> rank -> cached RankedCandidateSet.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from fluxplay.domain.entities.playback import (
    AddonSource,
    Candidate,
    ContentIdentity,
    RankingPolicy,
)
from fluxplay.domain.ports.addon_client import AddonClientPort

# ---------------------------------------------------------------------------
# Protocols — what this use case needs from ranking components.
# ---------------------------------------------------------------------------


class _CandidateSorter(Protocol):
    """Ranks candidates under one policy snapshot."""

    def sort(self, candidates: list[Candidate]) -> list[Candidate]: ...


_SorterFactory = Callable[[RankingPolicy], _CandidateSorter]
_TitleFilterFn = Callable[..., list[Candidate]]

log = structlog.get_logger(__name__)


@dataclass
class _CachedSet:
    """Merged (deduped, filtered) candidates plus the last ranking of them."""

    merged: tuple[Candidate, ...]
    policy: RankingPolicy | None = None
    ranked: tuple[Candidate, ...] = field(default_factory=tuple)


def _dedup_title(title: str) -> str:
    return " ".join(title.casefold().split())


def _deduplicate(candidates: list[Candidate]) -> list[Candidate]:
    """Drop repeats by URL, or by (normalised title, source). First one wins."""
    seen_urls: set[str] = set()
    seen_titles: set[tuple[str, str]] = set()
    unique: list[Candidate] = []
    for c in candidates:
        title_key = (_dedup_title(c.title), c.source)
        if c.url in seen_urls or title_key in seen_titles:
            continue
        seen_urls.add(c.url)
        seen_titles.add(title_key)
        unique.append(c)
    return unique


class CandidateAggregator:
    """Fan out to all enabled addons and keep one ranked set per identity.

    Concurrent ``resolve`` calls for the same identity share one in-flight
    fetch; calls for different identities run in parallel. Empty results
    are never cached, so the next call retries the sources.
    """

    def __init__(
        self,
        *,
        addon_client: AddonClientPort,
        sources: Sequence[AddonSource],
        sorter_factory: _SorterFactory,
        filter_fn: _TitleFilterFn,
        min_ratio: float = 0.75,
    ) -> None:
        self._addon_client = addon_client
        self._sources = [s for s in sources if s.enabled]
        self._sorter_factory = sorter_factory
        self._filter_fn = filter_fn
        self._min_ratio = min_ratio
        self._cache: dict[ContentIdentity, _CachedSet] = {}
        self._inflight: dict[ContentIdentity, asyncio.Task[tuple[Candidate, ...]]] = {}

    @property
    def sources(self) -> list[AddonSource]:
        return list(self._sources)

    async def resolve(
        self,
        identity: ContentIdentity,
        *,
        title: str | None = None,
        policy: RankingPolicy | None = None,
    ) -> tuple[Candidate, ...]:
        """Return the ranked candidate set for *identity* (possibly empty).

        Never raises for source failures; those contribute nothing.
        """
        policy = policy or RankingPolicy()

        entry = self._cache.get(identity)
        if entry is not None:
            log.debug("candidate_cache_hit", stream_id=identity.stream_id)
            return self._rank(entry, policy)

        task = self._inflight.get(identity)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(identity, title))
            self._inflight[identity] = task
            task.add_done_callback(
                lambda t, key=identity: self._discard_inflight(key, t)
            )
        else:
            log.debug("candidate_fetch_joined", stream_id=identity.stream_id)

        # Shielded: a cancelled caller must not cancel the shared fetch.
        merged = await asyncio.shield(task)
        if not merged:
            return ()

        entry = self._cache.get(identity)
        if entry is None:
            # Invalidated while in flight; rank the result without caching it.
            entry = _CachedSet(merged=merged)
        return self._rank(entry, policy)

    def cached(
        self,
        identity: ContentIdentity,
        *,
        policy: RankingPolicy | None = None,
    ) -> tuple[Candidate, ...] | None:
        """Cached ranked set, or None. Never fetches."""
        entry = self._cache.get(identity)
        if entry is None:
            return None
        return self._rank(entry, policy or RankingPolicy())

    def invalidate(self, identity: ContentIdentity) -> bool:
        """Drop the cached set (and detach any in-flight fetch) for *identity*."""
        self._inflight.pop(identity, None)
        return self._cache.pop(identity, None) is not None

    def clear(self) -> None:
        self._inflight.clear()
        self._cache.clear()
        log.info("candidate_cache_cleared")

    def __len__(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _discard_inflight(
        self, identity: ContentIdentity, task: asyncio.Task[tuple[Candidate, ...]]
    ) -> None:
        if self._inflight.get(identity) is task:
            del self._inflight[identity]

    def _rank(self, entry: _CachedSet, policy: RankingPolicy) -> tuple[Candidate, ...]:
        if entry.policy != policy:
            # Always rank from merge order so a re-rank equals a fresh ranking.
            entry.ranked = tuple(self._sorter_factory(policy).sort(list(entry.merged)))
            entry.policy = policy
        return entry.ranked

    async def _fetch_and_store(
        self, identity: ContentIdentity, title: str | None
    ) -> tuple[Candidate, ...]:
        merged = await self._fetch_merged(identity, title)
        current = asyncio.current_task()
        if merged and self._inflight.get(identity) is current:
            self._cache[identity] = _CachedSet(merged=merged)
        return merged

    async def _fetch_merged(
        self, identity: ContentIdentity, title: str | None
    ) -> tuple[Candidate, ...]:
        if not self._sources:
            log.warning("no_addon_sources_enabled", stream_id=identity.stream_id)
            return ()

        per_source = await asyncio.gather(
            *(self._addon_client.fetch(s, identity) for s in self._sources)
        )

        # gather() preserves argument order: merge follows configured order.
        merged = [c for contribution in per_source for c in contribution]
        unique = _deduplicate(merged)
        matched = self._filter_fn(unique, title, min_ratio=self._min_ratio)

        log.info(
            "candidates_aggregated",
            stream_id=identity.stream_id,
            sources=len(self._sources),
            fetched=len(merged),
            unique=len(unique),
            matched=len(matched),
        )
        return tuple(matched)
