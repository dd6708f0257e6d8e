"""Typed view of ``app.state`` as populated by the lifespan."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from fluxplay.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from fluxplay.application.use_cases.candidate_aggregator import (
        CandidateAggregator,
    )
    from fluxplay.application.use_cases.playback_orchestrator import (
        PlaybackOrchestrator,
    )
    from fluxplay.application.use_cases.race_coordinator import RaceCoordinator
    from fluxplay.domain.ports import (
        AddonClientPort,
        MetadataPort,
        WatchHistoryPort,
    )
    from fluxplay.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
    from fluxplay.infrastructure.metrics import MetricsCollector
    from fluxplay.infrastructure.persistence.session_cache import (
        InMemorySessionCache,
    )


class AppState(State):
    """Everything the routers read from ``request.app.state``.

    Only ``config`` exists before startup.
    """

    config: AppConfig

    # Shared resources
    cache: DiskcacheAdapter
    http_client: httpx.AsyncClient
    session_store: InMemorySessionCache

    # In-memory counters
    metrics: MetricsCollector

    # Domain ports
    metadata: MetadataPort
    addon_client: AddonClientPort
    history: WatchHistoryPort

    # Application services
    aggregator: CandidateAggregator
    race_coordinator: RaceCoordinator
    orchestrator: PlaybackOrchestrator
