"""Remote stream-racing worker client.

The worker receives a list of candidate URLs, probes them in parallel
from the edge and answers with the fastest responder::

    POST <worker_url>   {"urls": ["https://...", ...]}
    200                 {"url": "https://...", "latency": 182, "status": 200}

Anything else (timeout, non-200, malformed body) is a failed race.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from fluxplay.domain.entities.errors import RaceUnavailable
from fluxplay.domain.entities.playback import RaceResult

log = structlog.get_logger(__name__)


def _parse_race_body(data: Any) -> RaceResult:
    if not isinstance(data, dict):
        raise RaceUnavailable("race response is not an object")
    url = data.get("url")
    latency = data.get("latency")
    if not isinstance(url, str) or not url:
        raise RaceUnavailable("race response has no winning url")
    if isinstance(latency, bool) or not isinstance(latency, int):
        raise RaceUnavailable("race response has no integer latency")
    if not isinstance(data.get("status"), int):
        raise RaceUnavailable("race response has no status")
    return RaceResult(winning_url=url, latency_ms=latency)


class HttpxStreamRacer:
    """Implements ``StreamRacerPort`` against a single worker URL."""

    def __init__(self, *, http_client: httpx.AsyncClient, worker_url: str) -> None:
        self._http = http_client
        self._worker_url = worker_url

    async def _post(self, urls: list[str], timeout: float) -> RaceResult:
        try:
            resp = await self._http.post(
                self._worker_url,
                json={"urls": urls},
                timeout=timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RaceUnavailable(f"{type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise RaceUnavailable(f"worker returned status {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise RaceUnavailable("malformed JSON body") from e
        return _parse_race_body(data)

    async def race(self, urls: list[str], *, timeout: float = 5.0) -> RaceResult | None:
        """Race *urls* remotely. Returns None on any failure."""
        if not urls:
            return None

        log.info("race_started", url_count=len(urls), worker=self._worker_url)
        try:
            result = await self._post(urls, timeout)
        except RaceUnavailable as e:
            log.warning("race_unavailable", worker=self._worker_url, error=e.message)
            return None

        log.info(
            "race_winner",
            url=result.winning_url,
            latency_ms=result.latency_ms,
        )
        return result
