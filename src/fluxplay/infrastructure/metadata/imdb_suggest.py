"""IMDb Suggest API fallback — metadata lookup without an API key.

Only the title and category are available this way; the season
structure stays unknown, so next-episode preloading is skipped.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from fluxplay.domain.entities.playback import MediaMetadata
from fluxplay.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_SUGGEST_URL = "https://v2.sg.media-imdb.com/suggestion/t/{imdb_id}.json"
_TTL_TITLE = 86_400  # 24 hours

_SERIES_KINDS: frozenset[str] = frozenset({"tvSeries", "tvMiniSeries"})


class ImdbSuggestMetadataClient:
    """Implements ``MetadataPort`` with the free IMDb Suggest API."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._timeout = timeout

    async def _fetch_suggest(self, imdb_id: str) -> dict[str, Any] | None:
        """Fetch and cache the IMDb Suggest entry for *imdb_id*."""
        cache_key = f"imdb:suggest:{imdb_id}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        url = _SUGGEST_URL.format(imdb_id=imdb_id)
        try:
            resp = await self._http.get(url, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError):
            log.warning("imdb_suggest_failed", imdb_id=imdb_id, exc_info=True)
            return None

        entries = data.get("d") if isinstance(data, dict) else None
        if not entries:
            return None

        # Prefer the entry matching the requested id, else the first one.
        entry = next((e for e in entries if e.get("id") == imdb_id), entries[0])
        await self._cache.set(cache_key, entry, ttl=_TTL_TITLE)
        return entry

    async def lookup(self, external_id: str) -> MediaMetadata | None:
        if not external_id.startswith("tt"):
            return None

        entry = await self._fetch_suggest(external_id)
        if entry is None or not entry.get("l"):
            return None

        category = "series" if entry.get("qid") in _SERIES_KINDS else "movie"
        return MediaMetadata(
            external_id=external_id,
            title=entry["l"],
            category=category,
        )
