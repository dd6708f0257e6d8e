"""Playback orchestration use case.

ContentIdentity -> session cache (fresh / stale+probe / miss)
-> aggregate -> race or top-ranked fallback -> ResolvedStream.

The orchestrator owns one playback session at a time: the resolved
identity, its metadata and candidate list, the URL currently handed to
the player and the URLs that already failed. Caches (session entries,
ranked candidate sets) outlive sessions and are owned by their services.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from fluxplay.domain.entities.errors import (
    CandidatesExhaustedError,
    NoActiveSessionError,
    NoCandidatesError,
    SessionClosedError,
)
from fluxplay.domain.entities.playback import (
    Candidate,
    ContentIdentity,
    MediaMetadata,
    PlaybackState,
    RaceResult,
    RankingPolicy,
    ResolvedStream,
)
from fluxplay.domain.ports.metadata import MetadataPort
from fluxplay.domain.ports.player import PlayerPort
from fluxplay.domain.ports.session_store import SessionStorePort
from fluxplay.domain.ports.watch_history import WatchHistoryPort

# ---------------------------------------------------------------------------
# Protocols — define what this use case needs from its dependencies.
# ---------------------------------------------------------------------------


class _PlaybackConfig(Protocol):
    """Playback settings, read once at the start of every resolution."""

    freshness_window_seconds: int
    refresh_delay_seconds: float
    preload_threshold: float

    def ranking_policy(self, sticky_source: str | None = None) -> RankingPolicy: ...


class _Aggregator(Protocol):
    async def resolve(
        self,
        identity: ContentIdentity,
        *,
        title: str | None = None,
        policy: RankingPolicy | None = None,
    ) -> tuple[Candidate, ...]: ...


class _RaceCoordinator(Protocol):
    @property
    def enabled(self) -> bool: ...

    async def race_candidates(
        self, candidates: tuple[Candidate, ...]
    ) -> RaceResult | None: ...


class _SessionMetrics(Protocol):
    def record_session_hit(self, *, revalidated: bool) -> None: ...


# Injected liveness probe: URL -> alive?
_ProbeFn = Callable[[str], Awaitable[bool]]

log = structlog.get_logger(__name__)


@dataclass
class _Session:
    """Transient per-session state. Replaced on every ``resolve``."""

    identity: ContentIdentity
    generation: int
    metadata: MediaMetadata | None = None
    candidates: tuple[Candidate, ...] = ()
    current_url: str | None = None
    current_candidate: Candidate | None = None
    failed_urls: set[str] = field(default_factory=set)
    policy: RankingPolicy = field(default_factory=RankingPolicy)
    preloaded: bool = False
    closed: bool = False

    @property
    def title(self) -> str | None:
        return self.metadata.title if self.metadata else None


def _find_candidate(candidates: tuple[Candidate, ...], url: str) -> Candidate | None:
    return next((c for c in candidates if c.url == url), None)


class PlaybackOrchestrator:
    """State machine a player UI drives to get (and keep) a playable URL.

    Flow of ``resolve``:
        1. Metadata lookup (title for matching, season structure).
        2. Session cache: fresh hit returns immediately and refreshes the
           candidate list in the background; a stale hit is probed once.
        3. Miss: aggregate, race the capped shortlist, or fall back to the
           top-ranked candidate.
        4. Store the selection in the session cache.

    Background work (candidate refresh, next-episode preload) runs as
    fire-and-forget tasks whose failures are logged and never reach the
    active session.
    """

    def __init__(
        self,
        *,
        aggregator: _Aggregator,
        race_coordinator: _RaceCoordinator,
        session_store: SessionStorePort,
        metadata: MetadataPort,
        probe_fn: _ProbeFn,
        config: _PlaybackConfig,
        history: WatchHistoryPort | None = None,
        player: PlayerPort | None = None,
        metrics: _SessionMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._aggregator = aggregator
        self._race = race_coordinator
        self._sessions = session_store
        self._metadata = metadata
        self._probe_fn = probe_fn
        self._config = config
        self._history = history
        self._player = player
        self._metrics = metrics
        self._clock = clock

        self._state = PlaybackState.IDLE
        self._session: _Session | None = None
        self._generation = 0
        self._resolve_task: asyncio.Task[ResolvedStream] | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._sticky_source: str | None = None
        self._error_message: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def sticky_source(self) -> str | None:
        return self._sticky_source

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def current_identity(self) -> ContentIdentity | None:
        return self._session.identity if self._session else None

    @property
    def current_url(self) -> str | None:
        return self._session.current_url if self._session else None

    @property
    def background_tasks(self) -> frozenset[asyncio.Task[None]]:
        return frozenset(self._background)

    def snapshot(self) -> dict[str, Any]:
        """JSON-serializable view of the session for the UI."""
        session = self._session
        return {
            "state": self._state.value,
            "stream_id": session.identity.stream_id if session else None,
            "title": session.title if session else None,
            "current_url": session.current_url if session else None,
            "current_source": (
                session.current_candidate.source
                if session and session.current_candidate
                else None
            ),
            "candidates": len(session.candidates) if session else 0,
            "failed": len(session.failed_urls) if session else 0,
            "sticky_source": self._sticky_source,
            "error": self._error_message,
        }

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self, identity: ContentIdentity) -> ResolvedStream:
        """Resolve *identity* to a playable URL and make it the active session.

        Raises:
            NoCandidatesError: no source offered a matching stream.
            SessionClosedError: ``close()`` was called while resolving.
        """
        self._generation += 1
        session = _Session(identity=identity, generation=self._generation)
        self._session = session
        self._error_message = None
        self._set_state(PlaybackState.RESOLVING, session)

        task = asyncio.create_task(self._resolve(session))
        self._resolve_task = task
        try:
            return await task
        except asyncio.CancelledError:
            if session.closed:
                raise SessionClosedError() from None
            raise
        finally:
            if self._resolve_task is task:
                self._resolve_task = None

    async def _resolve(self, session: _Session) -> ResolvedStream:
        identity = session.identity
        config = self._config
        freshness = config.freshness_window_seconds
        refresh_delay = config.refresh_delay_seconds
        session.policy = config.ranking_policy(self._sticky_source)

        session.metadata = await self._metadata.lookup(identity.external_id)
        if session.metadata is None:
            log.warning("metadata_unavailable", external_id=identity.external_id)
        elif session.metadata.category == "series" and not identity.is_series:
            # Series requested without season/episode: start at S1E1.
            identity = ContentIdentity.for_series(identity.external_id)
            session.identity = identity
            log.info("series_identity_defaulted", stream_id=identity.stream_id)

        entry = await self._sessions.lookup(identity)
        if entry is not None:
            age = entry.age_seconds(self._clock())
            revalidated = False
            if age >= freshness:
                alive = await self._probe_fn(entry.url)
                log.info(
                    "session_entry_probed",
                    stream_id=identity.stream_id,
                    age_seconds=round(age, 1),
                    alive=alive,
                )
                if alive:
                    await self._sessions.store(identity, entry.url)
                    revalidated = True
                else:
                    await self._sessions.invalidate(identity)
                    entry = None

            if entry is not None:
                if self._metrics is not None:
                    self._metrics.record_session_hit(revalidated=revalidated)
                log.info(
                    "session_hit",
                    stream_id=identity.stream_id,
                    revalidated=revalidated,
                )
                self._spawn(
                    self._refresh_candidates(session, refresh_delay),
                    name=f"refresh:{identity.stream_id}",
                )
                return await self._select(
                    session,
                    ResolvedStream(
                        identity=identity,
                        url=entry.url,
                        from_session_cache=True,
                    ),
                )

        candidates = await self._aggregator.resolve(
            identity, title=session.title, policy=session.policy
        )
        if self._is_current(session):
            session.candidates = candidates

        if not candidates:
            log.warning("no_candidates", stream_id=identity.stream_id)
            self._fail(session, NoCandidatesError.message)
            raise NoCandidatesError()

        result: RaceResult | None = None
        if self._race.enabled:
            self._set_state(PlaybackState.RACING, session)
            result = await self._race.race_candidates(candidates)

        if result is not None:
            stream = ResolvedStream(
                identity=identity,
                url=result.winning_url,
                candidate=_find_candidate(candidates, result.winning_url),
                raced=True,
            )
        else:
            top = candidates[0]
            log.info(
                "race_fallback_top_candidate",
                stream_id=identity.stream_id,
                source=top.source,
                quality=top.quality.label,
            )
            stream = ResolvedStream(identity=identity, url=top.url, candidate=top)

        await self._sessions.store(identity, stream.url)
        return await self._select(session, stream)

    async def _select(
        self, session: _Session, stream: ResolvedStream
    ) -> ResolvedStream:
        """Make *stream* the session's current URL (only if still current)."""
        if not self._is_current(session):
            log.info("resolution_superseded", stream_id=stream.identity.stream_id)
            return stream

        session.current_url = stream.url
        session.current_candidate = stream.candidate or _find_candidate(
            session.candidates, stream.url
        )
        self._set_state(PlaybackState.RESOLVED, session)
        log.info(
            "stream_resolved",
            stream_id=stream.identity.stream_id,
            url=stream.url,
            from_session_cache=stream.from_session_cache,
            raced=stream.raced,
        )
        if self._player is not None:
            await self._player.play(stream.url)
        return stream

    # ------------------------------------------------------------------
    # Playback signals
    # ------------------------------------------------------------------

    async def begin_playback(self) -> None:
        """Resolved -> Playing; records watch history for the resolved identity."""
        session = self._require_resolved()
        self._set_state(PlaybackState.PLAYING, session)
        await self._record_history(session)

    async def on_progress(self, position: float, duration: float) -> float | None:
        """Record playback progress; preload the next episode once past the threshold.

        Returns the progress ratio, or None when *duration* is unknown.
        """
        session = self._require_resolved()
        if self._state is PlaybackState.RESOLVED:
            self._set_state(PlaybackState.PLAYING, session)

        if duration <= 0:
            await self._record_history(session)
            return None

        progress = min(max(position / duration, 0.0), 1.0)
        await self._record_history(session, progress=progress)

        if progress >= self._config.preload_threshold and not session.preloaded:
            session.preloaded = True
            self._trigger_preload(session)
        return progress

    async def report_playback_error(self) -> ResolvedStream:
        """Playing -> NextCandidate: switch to the next untried candidate.

        Raises:
            CandidatesExhaustedError: every candidate has failed.
        """
        session = self._require_resolved()
        self._set_state(PlaybackState.NEXT_CANDIDATE, session)

        failed_url = session.current_url
        if failed_url is not None:
            session.failed_urls.add(failed_url)
        log.warning(
            "playback_error_reported",
            stream_id=session.identity.stream_id,
            url=failed_url,
            failed=len(session.failed_urls),
        )

        if not session.candidates:
            # Fresh session hit whose background refresh has not landed yet.
            candidates = await self._aggregator.resolve(
                session.identity, title=session.title, policy=session.policy
            )
            if not self._is_current(session):
                raise SessionClosedError()
            session.candidates = candidates

        nxt = self._next_untried(session, failed_url)
        if nxt is None:
            log.error(
                "candidates_exhausted",
                stream_id=session.identity.stream_id,
                tried=len(session.failed_urls),
            )
            self._fail(session, CandidatesExhaustedError.message)
            if self._player is not None:
                await self._player.stop()
            raise CandidatesExhaustedError()

        await self._sessions.store(session.identity, nxt.url)
        stream = ResolvedStream(identity=session.identity, url=nxt.url, candidate=nxt)
        return await self._select(session, stream)

    @staticmethod
    def _next_untried(session: _Session, failed_url: str | None) -> Candidate | None:
        candidates = session.candidates
        start = 0
        if failed_url is not None:
            idx = next(
                (i for i, c in enumerate(candidates) if c.url == failed_url), None
            )
            if idx is not None:
                start = idx + 1
        return next(
            (c for c in candidates[start:] if c.url not in session.failed_urls), None
        )

    # ------------------------------------------------------------------
    # Manual selection
    # ------------------------------------------------------------------

    def list_candidates(self) -> tuple[Candidate, ...]:
        return self._require_session().candidates

    async def select_candidate(self, candidate: Candidate) -> ResolvedStream:
        """Manual override: play *candidate* and prefer its source from now on."""
        session = self._require_session()
        if self._state is PlaybackState.CLOSED:
            raise NoActiveSessionError()

        self._sticky_source = candidate.source
        session.policy = self._config.ranking_policy(self._sticky_source)
        session.failed_urls.discard(candidate.url)
        self._error_message = None
        log.info(
            "candidate_selected_manually",
            stream_id=session.identity.stream_id,
            source=candidate.source,
            url=candidate.url,
        )

        await self._sessions.store(session.identity, candidate.url)
        stream = ResolvedStream(
            identity=session.identity, url=candidate.url, candidate=candidate
        )
        stream = await self._select(session, stream)
        await self._record_history(session)
        return stream

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    def next_episode(self) -> ContentIdentity | None:
        """Next sequential episode of the active series, or None."""
        return self._next_episode_of(self._require_session())

    @staticmethod
    def _next_episode_of(session: _Session) -> ContentIdentity | None:
        identity = session.identity
        if not identity.is_series or session.metadata is None:
            return None
        nxt = session.metadata.next_episode(identity.season or 1, identity.episode or 1)
        if nxt is None:
            return None
        return ContentIdentity.for_series(identity.external_id, *nxt)

    def _trigger_preload(self, session: _Session) -> None:
        nxt = self._next_episode_of(session)
        if nxt is None:
            log.debug("preload_skipped", stream_id=session.identity.stream_id)
            return
        log.info(
            "preload_next_episode",
            stream_id=session.identity.stream_id,
            next_stream_id=nxt.stream_id,
        )
        self._spawn(
            self._aggregator.resolve(nxt, title=session.title, policy=session.policy),
            name=f"preload:{nxt.stream_id}",
        )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """End the session: cancel in-flight resolution, keep caches."""
        session = self._session
        task = self._resolve_task
        if session is not None:
            session.closed = True
        if task is not None and not task.done():
            task.cancel()
            log.info(
                "resolution_cancelled",
                stream_id=session.identity.stream_id if session else None,
            )

        self._session = None
        self._error_message = None
        self._state = PlaybackState.CLOSED
        log.info("playback_session_closed")
        if self._player is not None:
            await self._player.stop()

    async def aclose(self) -> None:
        """Process shutdown: close the session and cancel background tasks."""
        await self.close()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_current(self, session: _Session) -> bool:
        return self._session is session and not session.closed

    def _set_state(self, state: PlaybackState, session: _Session) -> None:
        if not self._is_current(session):
            return
        if state is not self._state:
            log.debug(
                "playback_state_changed",
                stream_id=session.identity.stream_id,
                old=self._state.value,
                new=state.value,
            )
        self._state = state

    def _fail(self, session: _Session, message: str) -> None:
        if self._is_current(session):
            self._error_message = message
            self._set_state(PlaybackState.FAILED, session)

    def _require_session(self) -> _Session:
        if self._session is None:
            raise NoActiveSessionError()
        return self._session

    def _require_resolved(self) -> _Session:
        session = self._require_session()
        if session.current_url is None:
            raise NoActiveSessionError()
        return session

    async def _record_history(
        self, session: _Session, *, progress: float | None = None
    ) -> None:
        if self._history is None:
            return
        await self._history.record(
            session.identity, title=session.title or "", progress=progress
        )

    async def _refresh_candidates(self, session: _Session, delay: float) -> None:
        await asyncio.sleep(delay)
        candidates = await self._aggregator.resolve(
            session.identity, title=session.title, policy=session.policy
        )
        if not self._is_current(session):
            return
        session.candidates = candidates
        if session.current_url is not None and session.current_candidate is None:
            session.current_candidate = _find_candidate(candidates, session.current_url)
        log.info(
            "candidates_refreshed",
            stream_id=session.identity.stream_id,
            count=len(candidates),
        )

    def _spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> None:
        task = asyncio.create_task(self._run_background(coro, name), name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @staticmethod
    async def _run_background(coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            log.warning("background_task_failed", task=name, exc_info=True)
