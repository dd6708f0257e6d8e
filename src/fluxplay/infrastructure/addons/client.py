"""Stremio addon stream client — async httpx implementation.

Queries ``<base_url>/stream/<movie|series>/<stream_id>.json`` and turns the
``streams`` array into :class:`Candidate` objects. Every failure collapses
to an empty list; the aggregator treats a failing addon as one that simply
had nothing to offer.
"""

from __future__ import annotations

import re
import time
from typing import Any
from urllib.parse import unquote

import httpx
import structlog

from fluxplay.domain.entities.errors import DecodeError, SourceUnavailable
from fluxplay.domain.entities.playback import AddonSource, Candidate, ContentIdentity
from fluxplay.infrastructure.metrics import MetricsCollector
from fluxplay.infrastructure.ranking.quality_parser import parse_quality_tier

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

MAX_DECODE_PASSES = 3

# A percent-encoded "%" (double encoding) or an encoded "://".
_ENCODING_MARKER_RE = re.compile(r"%25|%3A%2F%2F", re.IGNORECASE)


def _has_encoding_marker(url: str) -> bool:
    return _ENCODING_MARKER_RE.search(url) is not None


def decode_stream_url(raw: str, *, max_passes: int = MAX_DECODE_PASSES) -> str:
    """Undo repeated percent-encoding applied by upstream addons.

    Decodes one layer per pass until no encoding marker remains, bounded
    by *max_passes* so a pathological URL cannot loop forever.
    ``http%253A%252F%252Fx%252Fa.mp4`` needs exactly two passes.
    """
    url = raw.strip()
    for _ in range(max_passes):
        if not _has_encoding_marker(url):
            break
        url = unquote(url)
    return url


def _validate_url(url: str) -> str:
    """Return *url* if it is an absolute http(s) URL, else raise DecodeError."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise DecodeError(f"unparsable stream url: {url!r}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise DecodeError(f"not an absolute http(s) url: {url!r}")
    return url


def _parse_stream(entry: Any, source: str) -> Candidate:
    """Convert one ``streams[]`` element to a Candidate."""
    if not isinstance(entry, dict):
        raise DecodeError("stream entry is not an object")
    raw_url = entry.get("url")
    if not isinstance(raw_url, str) or not raw_url:
        raise DecodeError("stream entry has no url")

    url = _validate_url(decode_stream_url(raw_url))
    title = entry.get("title") or entry.get("name") or "Unknown"
    return Candidate(
        title=str(title),
        url=url,
        source=source,
        quality=parse_quality_tier(str(title)),
    )


def parse_streams_payload(payload: Any, source: str) -> list[Candidate]:
    """Parse an addon JSON body into candidates, skipping broken entries.

    Raises DecodeError when the body itself is not a ``{"streams": [...]}``
    object.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("streams"), list):
        raise DecodeError("response has no streams list")

    candidates: list[Candidate] = []
    for entry in payload["streams"]:
        try:
            candidates.append(_parse_stream(entry, source))
        except DecodeError as e:
            log.debug("addon_stream_skipped", source=source, reason=str(e))
    return candidates


class HttpxAddonClient:
    """Implements ``AddonClientPort`` on top of a shared httpx.AsyncClient."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 8.0,
        user_agent: str = DEFAULT_USER_AGENT,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._http = http_client
        self._timeout = timeout_seconds
        self._user_agent = user_agent
        self._metrics = metrics

    @staticmethod
    def stream_url(source: AddonSource, identity: ContentIdentity) -> str:
        base = source.base_url.rstrip("/")
        return f"{base}/stream/{identity.category}/{identity.stream_id}.json"

    async def _request(self, source: AddonSource, url: str) -> Any:
        """GET the addon endpoint and return the decoded JSON body.

        Returns None for 404 (no streams for this id).
        """
        try:
            resp = await self._http.get(
                url,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SourceUnavailable(f"{type(e).__name__}: {e}") from e

        if resp.status_code == 404:
            log.debug("addon_no_streams", source=source.name, url=url)
            return None
        if resp.status_code != 200:
            raise SourceUnavailable(f"status {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError("malformed JSON body") from e

    async def fetch(
        self, source: AddonSource, identity: ContentIdentity
    ) -> list[Candidate]:
        """Query one addon. Never raises."""
        url = self.stream_url(source, identity)
        start_ns = time.perf_counter_ns()
        log.debug("addon_request", source=source.name, url=url)

        try:
            payload = await self._request(source, url)
            candidates = (
                [] if payload is None else parse_streams_payload(payload, source.name)
            )
        except SourceUnavailable as e:
            log.warning(
                "addon_unavailable", source=source.name, url=url, error=e.message
            )
            self._record(source, start_ns, 0, success=False)
            return []
        except DecodeError as e:
            log.warning(
                "addon_decode_error", source=source.name, url=url, error=e.message
            )
            self._record(source, start_ns, 0, success=False)
            return []

        log.info(
            "addon_streams_found",
            source=source.name,
            stream_id=identity.stream_id,
            count=len(candidates),
        )
        self._record(source, start_ns, len(candidates), success=True)
        return candidates

    def _record(
        self, source: AddonSource, start_ns: int, count: int, *, success: bool
    ) -> None:
        if self._metrics is None:
            return
        self._metrics.record_addon_fetch(
            source.name,
            time.perf_counter_ns() - start_ns,
            count,
            success=success,
        )
