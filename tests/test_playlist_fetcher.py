"""Tests for the playlist fetcher (core/playlist_fetcher.py).

The page source is a stub object — no HTTP.  The fetcher must never
raise: every failure resolves to an empty list.
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest

from yt_resume.core.extraction import BareIdStrategy
from yt_resume.core.playlist_fetcher import PlaylistFetcher
from yt_resume.exceptions import PlaylistFetchError

A = "aaaaaaaaaaa"
B = "bbbbbbbbbbb"


def _source(html: Any = None, *, side_effect: BaseException | None = None) -> AsyncMock:
    source = AsyncMock()
    if side_effect is not None:
        source.fetch_playlist_html.side_effect = side_effect
    else:
        source.fetch_playlist_html.return_value = html
    return source


class TestFetchPlaylistVideos:
    def test_returns_videos_from_page(self, hydration_html: Any, renderer: Any) -> None:
        source = _source(hydration_html([renderer(A, "One"), renderer(B, "Two"), renderer(A)]))
        videos = asyncio.run(PlaylistFetcher(source).fetch_playlist_videos("PL123"))

        assert [v.video_id for v in videos] == [A, B]
        source.fetch_playlist_html.assert_awaited_once_with("PL123")

    def test_fetch_error_yields_empty(self) -> None:
        source = _source(side_effect=PlaylistFetchError("relay down"))
        assert asyncio.run(PlaylistFetcher(source).fetch_playlist_videos("PL123")) == []

    def test_unexpected_error_yields_empty(self) -> None:
        source = _source(side_effect=RuntimeError("boom"))
        assert asyncio.run(PlaylistFetcher(source).fetch_playlist_videos("PL123")) == []

    def test_empty_page_yields_empty(self) -> None:
        assert asyncio.run(PlaylistFetcher(_source("")).fetch_playlist_videos("PL123")) == []

    def test_page_without_videos_yields_empty(self) -> None:
        source = _source("<html><body>nothing here</body></html>")
        assert asyncio.run(PlaylistFetcher(source).fetch_playlist_videos("PL123")) == []

    @pytest.mark.parametrize("bad_id", ["", "has space", "a/b"])
    def test_invalid_id_is_not_fetched(self, bad_id: str) -> None:
        source = _source("<html></html>")
        assert asyncio.run(PlaylistFetcher(source).fetch_playlist_videos(bad_id)) == []
        source.fetch_playlist_html.assert_not_awaited()

    def test_custom_strategies(self) -> None:
        page = "".join(f'"videoId":"{n:011d}"' for n in range(5))
        fetcher = PlaylistFetcher(_source(page), strategies=[BareIdStrategy(limit=2)])
        videos = asyncio.run(fetcher.fetch_playlist_videos("PL123"))
        assert len(videos) == 2
        assert [s.name for s in fetcher.strategies] == ["bare-ids"]

    def test_cancellation_propagates(self) -> None:
        source = _source(side_effect=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(PlaylistFetcher(source).fetch_playlist_videos("PL123"))
