"""Stream URL liveness probe.

A cached URL older than the freshness window is revalidated with a single
HEAD request before reuse. ``200 OK`` and ``206 Partial Content`` (common
for media servers honouring range requests) mean alive; anything else,
including transport errors and timeouts, means dead.
"""

from __future__ import annotations

import httpx
import structlog

log = structlog.get_logger(__name__)

_ALIVE_STATUS_CODES: frozenset[int] = frozenset({200, 206})


async def probe_stream(
    http: httpx.AsyncClient,
    url: str,
    *,
    timeout: float = 3.0,
) -> bool:
    """Return True if *url* still answers a HEAD request with 200/206."""
    try:
        resp = await http.head(url, follow_redirects=True, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        log.debug("probe_http_error", url=url, error=type(e).__name__)
        return False

    alive = resp.status_code in _ALIVE_STATUS_CODES
    log.debug("probe_result", url=url, status=resp.status_code, alive=alive)
    return alive
