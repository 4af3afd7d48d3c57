"""httpx backed implementation of :class:`~yt_resume.core.protocols.PageSource`.

The upstream playlist page blocks direct cross-origin requests, so the
request is routed through a public CORS relay that fetches it
server-side.  This module is the **only** place that imports ``httpx``;
every transport error and non-success status is re-raised as
:class:`~yt_resume.exceptions.PlaylistFetchError`.
"""

from __future__ import annotations

import logging
from urllib.parse import quote, urlencode

import httpx

from yt_resume.config import Settings
from yt_resume.exceptions import PlaylistFetchError, append_relay_hint

logger = logging.getLogger(__name__)

PLAYLIST_PAGE_URL: str = "https://www.youtube.com/playlist"


def playlist_page_url(playlist_id: str) -> str:
    """Return the desktop playlist page URL for *playlist_id*."""
    query = urlencode({"list": playlist_id, "disable_polymer": "true"})
    return f"{PLAYLIST_PAGE_URL}?{query}"


def relay_url(relay_prefix: str, target: str) -> str:
    """Wrap *target* in the relay prefix, fully percent-encoded."""
    return relay_prefix + quote(target, safe="")


class RelayPageSource:
    """Fetch playlist pages through a CORS relay.

    Parameters
    ----------
    settings:
        Supplies the relay prefix, request headers and timeout.
    client:
        Optional pre-built :class:`httpx.AsyncClient` (tests pass one
        with a :class:`httpx.MockTransport`).  When omitted, one client
        is created lazily and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    @property
    def headers(self) -> dict[str, str]:
        """Desktop-browser headers, to avoid the degraded mobile markup."""
        return {
            "User-Agent": self._settings.user_agent,
            "Accept-Language": self._settings.accept_language,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.request_timeout,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RelayPageSource:
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    async def fetch_playlist_html(self, playlist_id: str) -> str:
        """GET the playlist page via the relay and return its text.

        Raises
        ------
        PlaylistFetchError
            On any transport error, timeout or non-2xx response.
        """
        url = relay_url(self._settings.relay_url, playlist_page_url(playlist_id))
        logger.debug("Fetching playlist %s via %s", playlist_id, url)

        try:
            response = await self._get_client().get(url, headers=self.headers)
        except httpx.TimeoutException as exc:
            raise PlaylistFetchError(
                f"Timed out fetching playlist {playlist_id}.",
                hint=append_relay_hint("Check your network connection."),
            ) from exc
        except httpx.HTTPError as exc:
            raise PlaylistFetchError(
                f"Could not reach the relay for playlist {playlist_id}: {exc}",
                hint=append_relay_hint("Check your network connection."),
            ) from exc

        if not response.is_success:
            raise PlaylistFetchError(
                f"Relay answered HTTP {response.status_code} for playlist {playlist_id}.",
                hint=append_relay_hint("The playlist may be private or deleted."),
            )

        return response.text
