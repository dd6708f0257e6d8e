"""Tests for the Stremio addon stream client."""

from __future__ import annotations

import httpx
import pytest
import respx

from fluxplay.domain.entities.errors import DecodeError
from fluxplay.domain.entities.playback import AddonSource, ContentIdentity, QualityTier
from fluxplay.infrastructure.addons.client import (
    DEFAULT_USER_AGENT,
    HttpxAddonClient,
    decode_stream_url,
    parse_streams_payload,
)
from fluxplay.infrastructure.metrics import MetricsCollector

_SOURCE = AddonSource(name="WebStreamer", base_url="https://addon.example")
_MOVIE = ContentIdentity.for_movie("tt0133093")
_MOVIE_URL = "https://addon.example/stream/movie/tt0133093.json"


# ---------------------------------------------------------------------------
# decode_stream_url
# ---------------------------------------------------------------------------


class TestDecodeStreamUrl:
    def test_double_encoded_needs_two_passes(self) -> None:
        assert decode_stream_url("http%253A%252F%252Fx%252Fa.mp4") == "http://x/a.mp4"

    def test_encoded_scheme_decoded_once(self) -> None:
        assert (
            decode_stream_url("https%3A%2F%2Fcdn.example%2Fa.mp4")
            == "https://cdn.example/a.mp4"
        )

    def test_plain_url_unchanged(self) -> None:
        url = "https://cdn.example/movie%20file.mp4?token=a%2Bb"
        assert decode_stream_url(url) == url

    def test_pass_limit(self) -> None:
        # Four layers of encoding; only three are undone.
        raw = "http%2525253A"
        assert decode_stream_url(raw) == "http%3A"

    def test_strips_whitespace(self) -> None:
        assert decode_stream_url("  https://x/a.mp4 \n") == "https://x/a.mp4"


# ---------------------------------------------------------------------------
# parse_streams_payload
# ---------------------------------------------------------------------------


class TestParseStreamsPayload:
    def test_parses_entries(self) -> None:
        payload = {
            "streams": [
                {"title": "Matrix 1080p", "url": "https://cdn.example/1.mp4"},
                {"name": "Matrix 4K", "url": "https://cdn.example/2.mp4"},
                {"url": "https://cdn.example/3.mp4"},
            ]
        }
        candidates = parse_streams_payload(payload, "WebStreamer")
        assert [c.title for c in candidates] == ["Matrix 1080p", "Matrix 4K", "Unknown"]
        assert [c.quality for c in candidates] == [
            QualityTier.P1080,
            QualityTier.UHD,
            QualityTier.SD,
        ]
        assert all(c.source == "WebStreamer" for c in candidates)

    def test_title_preferred_over_name(self) -> None:
        payload = {
            "streams": [
                {"title": "T 720p", "name": "N", "url": "https://cdn.example/1.mp4"}
            ]
        }
        assert parse_streams_payload(payload, "s")[0].title == "T 720p"

    def test_drops_invalid_entries(self) -> None:
        payload = {
            "streams": [
                "not-an-object",
                {"title": "no url"},
                {"title": "magnet", "url": "magnet:?xt=urn:btih:abc"},
                {"title": "relative", "url": "/local/path.mp4"},
                {"title": "ok", "url": "https://cdn.example/ok.mp4"},
            ]
        }
        candidates = parse_streams_payload(payload, "s")
        assert [c.title for c in candidates] == ["ok"]

    def test_missing_streams_list_raises(self) -> None:
        with pytest.raises(DecodeError):
            parse_streams_payload({"error": "nope"}, "s")
        with pytest.raises(DecodeError):
            parse_streams_payload(["streams"], "s")


# ---------------------------------------------------------------------------
# HttpxAddonClient
# ---------------------------------------------------------------------------


class TestStreamUrl:
    def test_movie(self) -> None:
        assert HttpxAddonClient.stream_url(_SOURCE, _MOVIE) == _MOVIE_URL

    def test_series(self) -> None:
        identity = ContentIdentity.for_series("tt0903747", 1, 2)
        assert (
            HttpxAddonClient.stream_url(_SOURCE, identity)
            == "https://addon.example/stream/series/tt0903747:1:2.json"
        )

    def test_trailing_slash(self) -> None:
        source = AddonSource(name="x", base_url="https://addon.example/")
        assert HttpxAddonClient.stream_url(source, _MOVIE) == _MOVIE_URL


class TestFetch:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_returns_candidates(self) -> None:
        route = respx.get(_MOVIE_URL).respond(
            200,
            json={
                "streams": [
                    {
                        "title": "The Matrix 1080p",
                        "url": "https%3A%2F%2Fcdn.example%2Fm.mp4",
                    }
                ]
            },
        )
        metrics = MetricsCollector()
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http, metrics=metrics)
            candidates = await client.fetch(_SOURCE, _MOVIE)

        assert len(candidates) == 1
        assert candidates[0].url == "https://cdn.example/m.mp4"
        assert candidates[0].quality is QualityTier.P1080
        assert route.calls.last.request.headers["User-Agent"] == DEFAULT_USER_AGENT
        stats = metrics.snapshot()["addons"]["WebStreamer"]
        assert stats["successes"] == 1
        assert stats["total_candidates"] == 1

    @respx.mock
    @pytest.mark.asyncio()
    async def test_404_is_empty(self) -> None:
        respx.get(_MOVIE_URL).respond(404)
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http)
            assert await client.fetch(_SOURCE, _MOVIE) == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_server_error_is_empty(self) -> None:
        respx.get(_MOVIE_URL).respond(500)
        metrics = MetricsCollector()
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http, metrics=metrics)
            assert await client.fetch(_SOURCE, _MOVIE) == []
        assert metrics.snapshot()["addons"]["WebStreamer"]["failures"] == 1

    @respx.mock
    @pytest.mark.asyncio()
    async def test_malformed_json_is_empty(self) -> None:
        respx.get(_MOVIE_URL).respond(200, content=b"<html>oops</html>")
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http)
            assert await client.fetch(_SOURCE, _MOVIE) == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_body_without_streams_is_empty(self) -> None:
        respx.get(_MOVIE_URL).respond(200, json={"meta": {}})
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http)
            assert await client.fetch(_SOURCE, _MOVIE) == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_timeout_is_empty(self) -> None:
        respx.get(_MOVIE_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http, timeout_seconds=0.1)
            assert await client.fetch(_SOURCE, _MOVIE) == []

    @respx.mock
    @pytest.mark.asyncio()
    async def test_connect_error_is_empty(self) -> None:
        respx.get(_MOVIE_URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http)
            assert await client.fetch(_SOURCE, _MOVIE) == []

    @pytest.mark.asyncio()
    async def test_unencodable_id_is_empty(self) -> None:
        metrics = MetricsCollector()
        async with httpx.AsyncClient() as http:
            client = HttpxAddonClient(http_client=http, metrics=metrics)
            identity = ContentIdentity.for_movie("tt1\x00")
            assert await client.fetch(_SOURCE, identity) == []
        assert metrics.snapshot()["addons"]["WebStreamer"]["failures"] == 1
