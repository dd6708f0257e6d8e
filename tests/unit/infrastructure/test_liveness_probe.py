"""Tests for the stream liveness probe."""

from __future__ import annotations

import httpx
import pytest
import respx

from fluxplay.infrastructure.probing.liveness import probe_stream

_URL = "https://cdn.example/movie.mp4"


class TestProbeStream:
    @pytest.mark.parametrize("status", [200, 206])
    @respx.mock
    @pytest.mark.asyncio()
    async def test_alive(self, status: int) -> None:
        respx.head(_URL).respond(status)
        async with httpx.AsyncClient() as http:
            assert await probe_stream(http, _URL) is True

    @pytest.mark.parametrize("status", [403, 404, 410, 500])
    @respx.mock
    @pytest.mark.asyncio()
    async def test_dead_status(self, status: int) -> None:
        respx.head(_URL).respond(status)
        async with httpx.AsyncClient() as http:
            assert await probe_stream(http, _URL) is False

    @respx.mock
    @pytest.mark.asyncio()
    async def test_follows_redirect(self) -> None:
        moved = "https://edge.example/movie.mp4"
        respx.head(_URL).respond(302, headers={"Location": moved})
        respx.head(moved).respond(200)
        async with httpx.AsyncClient() as http:
            assert await probe_stream(http, _URL) is True

    @respx.mock
    @pytest.mark.asyncio()
    async def test_timeout_is_dead(self) -> None:
        respx.head(_URL).mock(side_effect=httpx.ConnectTimeout("slow"))
        async with httpx.AsyncClient() as http:
            assert await probe_stream(http, _URL, timeout=0.01) is False

    @pytest.mark.asyncio()
    async def test_invalid_url_is_dead(self) -> None:
        async with httpx.AsyncClient() as http:
            assert await probe_stream(http, "https://cdn.example/a\x00.mp4") is False
