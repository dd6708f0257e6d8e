"""Composition root: builds the object graph inside the FastAPI lifespan."""

from __future__ import annotations

import functools
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from fluxplay.application.use_cases.candidate_aggregator import CandidateAggregator
from fluxplay.application.use_cases.playback_orchestrator import PlaybackOrchestrator
from fluxplay.application.use_cases.race_coordinator import RaceCoordinator
from fluxplay.domain.ports.metadata import MetadataPort
from fluxplay.infrastructure.addons.client import HttpxAddonClient
from fluxplay.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from fluxplay.infrastructure.config.schema import AppConfig
from fluxplay.infrastructure.history.in_memory import InMemoryWatchHistory
from fluxplay.infrastructure.metadata.imdb_suggest import ImdbSuggestMetadataClient
from fluxplay.infrastructure.metadata.tmdb_client import HttpxTmdbMetadataClient
from fluxplay.infrastructure.metrics import MetricsCollector
from fluxplay.infrastructure.persistence.session_cache import InMemorySessionCache
from fluxplay.infrastructure.probing.liveness import probe_stream
from fluxplay.infrastructure.racing.client import HttpxStreamRacer
from fluxplay.infrastructure.ranking.candidate_sorter import CandidateSorter
from fluxplay.infrastructure.ranking.title_matcher import filter_by_title_match
from fluxplay.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def _build_metadata_client(state: AppState, config: AppConfig) -> MetadataPort:
    """TMDB when an API key is configured, IMDb suggest API otherwise."""
    if config.tmdb_api_key:
        log.info("tmdb_client_initialized", language=config.tmdb_language)
        return HttpxTmdbMetadataClient(
            api_key=config.tmdb_api_key,
            http_client=state.http_client,
            cache=state.cache,
            language=config.tmdb_language,
        )
    log.info("tmdb_client_fallback", reason="no API key, using IMDB suggest API")
    return ImdbSuggestMetadataClient(http_client=state.http_client, cache=state.cache)


def _build_race_coordinator(state: AppState, config: AppConfig) -> RaceCoordinator:
    playback = config.playback
    racer = (
        HttpxStreamRacer(http_client=state.http_client, worker_url=playback.racer_url)
        if playback.racer_url
        else None
    )
    coordinator = RaceCoordinator(
        racer=racer,
        enabled=playback.racing_enabled,
        timeout_seconds=playback.race_timeout_seconds,
        per_source=playback.race_per_source,
        source_count=playback.race_source_count,
        metrics=state.metrics,
    )
    log.info(
        "race_coordinator_initialized",
        enabled=coordinator.enabled,
        worker=playback.racer_url,
    )
    return coordinator


def _wire_services(state: AppState, config: AppConfig) -> None:
    """Build ports and use cases on top of the shared client and cache."""
    playback = config.playback

    state.metadata = _build_metadata_client(state, config)
    state.addon_client = HttpxAddonClient(
        http_client=state.http_client,
        timeout_seconds=playback.addon_timeout_seconds,
        metrics=state.metrics,
    )
    state.race_coordinator = _build_race_coordinator(state, config)
    state.session_store = InMemorySessionCache()
    state.history = InMemoryWatchHistory()

    sources = config.enabled_sources
    state.aggregator = CandidateAggregator(
        addon_client=state.addon_client,
        sources=sources,
        sorter_factory=CandidateSorter,
        filter_fn=filter_by_title_match,
        min_ratio=playback.title_match_ratio,
    )
    log.info("aggregator_initialized", sources=[s.name for s in sources])

    state.orchestrator = PlaybackOrchestrator(
        aggregator=state.aggregator,
        race_coordinator=state.race_coordinator,
        session_store=state.session_store,
        metadata=state.metadata,
        probe_fn=functools.partial(
            probe_stream,
            state.http_client,
            timeout=playback.probe_timeout_seconds,
        ),
        config=playback,
        history=state.history,
        metrics=state.metrics,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own every process-wide resource for the lifetime of the app.

    Resources close in reverse order of creation: orchestrator tasks
    first, then the HTTP client, then the metadata cache.
    """
    state = cast(AppState, app.state)
    config = state.config

    async with AsyncExitStack() as stack:
        state.metrics = MetricsCollector()

        state.cache = await stack.enter_async_context(
            DiskcacheAdapter(
                directory=config.cache_dir,
                ttl_seconds=config.cache_ttl_seconds,
            )
        )
        if config.environment == "dev":
            await state.cache.clear()

        state.http_client = await stack.enter_async_context(
            httpx.AsyncClient(
                timeout=httpx.Timeout(config.http_timeout_seconds),
                headers={"User-Agent": config.http_user_agent},
                follow_redirects=config.http_follow_redirects,
            )
        )
        log.info("http_client_initialized", timeout=config.http_timeout_seconds)

        _wire_services(state, config)
        stack.push_async_callback(state.orchestrator.aclose)

        log.info("app_startup_complete", environment=config.environment)
        yield

    log.info("app_shutdown_complete")
