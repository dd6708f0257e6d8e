"""TMDB metadata client — async httpx implementation with caching."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from fluxplay.domain.entities.playback import MediaMetadata, SeasonInfo
from fluxplay.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.themoviedb.org/3"

# Cache TTLs (seconds)
_TTL_FIND = 86_400  # 24 hours
_TTL_SEASONS = 21_600  # 6 hours, new episodes appear during a season run


class HttpxTmdbMetadataClient:
    """Async TMDB client using httpx + CachePort.

    Implements ``MetadataPort`` for IMDb ids (``tt…``). The title drives
    candidate matching; the season structure drives next-episode preloading.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        language: str = "en-US",
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._cache = cache
        self._language = language

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _params(self, **extra: Any) -> dict[str, Any]:
        return {"api_key": self._api_key, "language": self._language, **extra}

    async def _get(self, path: str, **extra: Any) -> dict[str, Any] | None:
        """GET request with error handling. Returns parsed JSON or None."""
        url = f"{_BASE_URL}{path}"
        try:
            resp = await self._http.get(url, params=self._params(**extra))
            if resp.status_code == 401:
                log.error("tmdb_api_key_invalid", status=401)
                return None
            if resp.status_code == 404:
                log.debug("tmdb_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError:
            log.warning("tmdb_http_error", path=path, exc_info=True)
            return None
        except (httpx.HTTPError, httpx.InvalidURL):
            log.warning("tmdb_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("tmdb_decode_error", path=path)
            return None

    async def _find(self, imdb_id: str) -> tuple[str, dict[str, Any]] | None:
        """TMDB /find by IMDb id → (media_type, result)."""
        cache_key = f"tmdb:find:{imdb_id}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached["media_type"], cached["result"]

        data = await self._get(f"/find/{imdb_id}", external_source="imdb_id")
        if data is None:
            return None

        # /find returns lists grouped by media type
        for key, media_type in (("movie_results", "movie"), ("tv_results", "tv")):
            results = data.get(key) or []
            if results:
                result = results[0]
                await self._cache.set(
                    cache_key,
                    {"media_type": media_type, "result": result},
                    ttl=_TTL_FIND,
                )
                return media_type, result
        return None

    async def _seasons(self, tv_id: int) -> tuple[SeasonInfo, ...]:
        cache_key = f"tmdb:seasons:{tv_id}"
        cached = await self._cache.get(cache_key)
        if cached is None:
            data = await self._get(f"/tv/{tv_id}")
            if data is None:
                return ()
            cached = [
                [s.get("season_number"), s.get("episode_count")]
                for s in data.get("seasons") or []
            ]
            await self._cache.set(cache_key, cached, ttl=_TTL_SEASONS)

        # Season 0 holds specials, which are not part of sequential playback.
        return tuple(
            SeasonInfo(season_number=int(number), episode_count=int(count))
            for number, count in cached
            if isinstance(number, int) and number > 0 and isinstance(count, int)
        )

    # ------------------------------------------------------------------
    # Public API (MetadataPort)
    # ------------------------------------------------------------------

    async def lookup(self, external_id: str) -> MediaMetadata | None:
        if not external_id.startswith("tt"):
            log.debug("tmdb_unsupported_id", external_id=external_id)
            return None

        found = await self._find(external_id)
        if found is None:
            return None
        media_type, result = found

        # Movies use "title", TV shows use "name"
        title = result.get("title") or result.get("name")
        if not title:
            return None

        if media_type == "movie":
            return MediaMetadata(external_id=external_id, title=title, category="movie")

        seasons = await self._seasons(int(result["id"])) if result.get("id") else ()
        return MediaMetadata(
            external_id=external_id,
            title=title,
            category="series",
            seasons=seasons,
        )
