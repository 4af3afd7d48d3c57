"""Tests for the relay page source (infra/relay_client.py).

All HTTP goes through ``httpx.MockTransport`` — no internet.

Coverage:
* Request URL is the relay prefix + fully-encoded playlist page URL.
* Desktop browser headers are sent.
* Transport errors, timeouts and non-2xx map to PlaylistFetchError
  with relay guidance in the hint.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from urllib.parse import unquote

import httpx
import pytest

from yt_resume.config import DEFAULT_USER_AGENT, Settings
from yt_resume.infra.relay_client import RelayPageSource, playlist_page_url, relay_url
from yt_resume.exceptions import PlaylistFetchError

Handler = Callable[[httpx.Request], httpx.Response]


def _fetch(settings: Settings, handler: Handler, playlist_id: str = "PL123") -> str:
    async def _run() -> str:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with client:
            source = RelayPageSource(settings, client=client)
            return await source.fetch_playlist_html(playlist_id)

    return asyncio.run(_run())


class TestUrls:
    def test_playlist_page_url(self) -> None:
        assert playlist_page_url("PL123") == (
            "https://www.youtube.com/playlist?list=PL123&disable_polymer=true"
        )

    def test_relay_url_encodes_whole_target(self) -> None:
        wrapped = relay_url("https://corsproxy.io/?", playlist_page_url("PL123"))
        assert wrapped == (
            "https://corsproxy.io/?"
            "https%3A%2F%2Fwww.youtube.com%2Fplaylist%3Flist%3DPL123%26disable_polymer%3Dtrue"
        )


class TestFetchPlaylistHtml:
    def test_success_returns_body(self, settings: Settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        assert _fetch(settings, handler) == "<html>ok</html>"

        request = seen[0]
        assert str(request.url).startswith("https://relay.test/")
        assert unquote(str(request.url)).endswith(
            "https://www.youtube.com/playlist?list=PL123&disable_polymer=true"
        )
        assert request.headers["User-Agent"] == DEFAULT_USER_AGENT
        assert request.headers["Accept-Language"] == "en-US,en;q=0.9"

    @pytest.mark.parametrize("status", [403, 404, 429, 500])
    def test_non_success_status(self, settings: Settings, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="nope")

        with pytest.raises(PlaylistFetchError, match=str(status)) as exc_info:
            _fetch(settings, handler)
        assert exc_info.value.hint is not None
        assert "CORS relay" in exc_info.value.hint

    def test_connect_error(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PlaylistFetchError, match="Could not reach the relay"):
            _fetch(settings, handler)

    def test_timeout(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(PlaylistFetchError, match="Timed out"):
            _fetch(settings, handler)


class TestClientLifecycle:
    def test_injected_client_is_not_closed(self, settings: Settings) -> None:
        async def _run() -> bool:
            client = httpx.AsyncClient(
                transport=httpx.MockTransport(lambda r: httpx.Response(200, text="x"))
            )
            async with RelayPageSource(settings, client=client) as source:
                await source.fetch_playlist_html("PL1")
            closed = client.is_closed
            await client.aclose()
            return closed

        assert asyncio.run(_run()) is False

    def test_headers_follow_settings(self) -> None:
        source = RelayPageSource(Settings(user_agent="UA/1", accept_language="de"))
        assert source.headers["User-Agent"] == "UA/1"
        assert source.headers["Accept-Language"] == "de"
