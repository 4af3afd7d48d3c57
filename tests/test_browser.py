"""Tests for the playlist browser (core/browser.py).

Coverage:
* View states: loading, no videos, ready with offsets and highlight.
* Opening a session per mount point; replacing and closing sessions.
* An empty playlist refuses to open a player.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from yt_resume.core.browser import BrowserStatus, PlaylistBrowser, build_view
from yt_resume.core.loader import SharedInitializer
from yt_resume.core.models import Course, VideoRef, default_thumbnail
from yt_resume.core.playlist_cache import PlaylistCache
from yt_resume.core.progress import ProgressRecorder
from yt_resume.core.session import SessionState
from yt_resume.exceptions import EmptyPlaylistError
from yt_resume.infra.memory_store import InMemoryProgressStore
from yt_resume.infra.virtual_player import ManualClock, VirtualPlayerFactory


class _StaticSource:
    def __init__(self, playlists: dict[str, list[str]]) -> None:
        self.playlists = playlists

    async def fetch_playlist_videos(self, playlist_id: str) -> list[VideoRef]:
        return [
            VideoRef(vid, f"Video {n}", default_thumbnail(vid))
            for n, vid in enumerate(self.playlists.get(playlist_id, []), start=1)
        ]


async def _never_sleep(seconds: float) -> None:
    await asyncio.Event().wait()


def _browser(
    playlists: dict[str, list[str]],
) -> tuple[PlaylistBrowser, VirtualPlayerFactory, InMemoryProgressStore]:
    factory = VirtualPlayerFactory(clock=ManualClock(), duration_delay_polls=0)
    store = InMemoryProgressStore()

    async def load() -> VirtualPlayerFactory:
        return factory

    browser = PlaylistBrowser(
        PlaylistCache(_StaticSource(playlists)),
        ProgressRecorder(store),
        SharedInitializer(load),
        "u1",
        sleep=_never_sleep,
    )
    return browser, factory, store


class TestBuildView:
    def test_loading(self) -> None:
        view = build_view("PL1", None)
        assert view.status is BrowserStatus.LOADING
        assert view.message == "Loading playlist…"

    def test_no_videos(self, make_playlist: Any) -> None:
        view = build_view("PL1", make_playlist("PL1", []))
        assert view.status is BrowserStatus.NO_VIDEOS
        assert view.entries == ()
        assert "No videos" in view.message

    def test_ready_with_offsets_and_highlight(self, make_playlist: Any) -> None:
        view = build_view(
            "PL1",
            make_playlist("PL1", ["a", "b"]),
            current_video_id="b",
            offsets={"a": 12.0},
        )
        assert view.status is BrowserStatus.READY
        assert [(e.position, e.video.video_id, e.is_current, e.offset_seconds)
                for e in view.entries] == [(1, "a", False, 12.0), (2, "b", True, None)]
        assert view.message == "2 videos"


class TestPlaylistBrowser:
    def test_refresh_then_view(self) -> None:
        browser, _, _ = _browser({"PL1": ["a", "b"]})
        assert browser.view("PL1").status is BrowserStatus.LOADING
        asyncio.run(browser.refresh(["PL1"]))
        assert browser.view("PL1").status is BrowserStatus.READY

    def test_refresh_course(self) -> None:
        browser, _, _ = _browser({"PL1": ["a"], "PL2": []})
        course = Course(
            course_id="c1",
            title="Course",
            videos=(
                "https://www.youtube.com/playlist?list=PL1",
                "https://www.youtube.com/playlist?list=PL2",
            ),
        )
        resolved = asyncio.run(browser.refresh_course(course))
        assert set(resolved) == {"PL1", "PL2"}
        assert browser.view("PL2").status is BrowserStatus.NO_VIDEOS

    def test_open_empty_playlist_raises(self) -> None:
        browser, factory, _ = _browser({"PL2": []})
        with pytest.raises(EmptyPlaylistError):
            asyncio.run(browser.open("PL2", mount_id="m1"))
        assert factory.created == []

    def test_open_highlights_current_video(self) -> None:
        browser, _, _ = _browser({"PL1": ["a", "b", "c"]})

        async def _run() -> None:
            session = await browser.open("PL1", mount_id="m1", start_video_id="b")
            assert session.state is SessionState.AWAITING_DURATION
            view = browser.view("PL1", mount_id="m1")
            assert view.current_video_id == "b"
            assert [e.is_current for e in view.entries] == [False, True, False]
            assert browser.view("PL1").current_video_id is None
            await browser.aclose()

        asyncio.run(_run())

    def test_reopening_mount_tears_down_previous(self) -> None:
        browser, factory, _ = _browser({"PL1": ["a", "b"]})

        async def _run() -> None:
            first = await browser.open("PL1", mount_id="m1")
            second = await browser.open("PL1", mount_id="m1", start_video_id="b")
            assert first.state is SessionState.TORN_DOWN
            assert browser.session_at("m1") is second
            assert len(factory.live_players) == 1
            await browser.aclose()

        asyncio.run(_run())
        assert factory.live_players == []

    def test_independent_mounts(self) -> None:
        browser, factory, _ = _browser({"PL1": ["a"], "PL3": ["x"]})

        async def _run() -> None:
            await browser.open("PL1", mount_id="m1")
            await browser.open("PL3", mount_id="m2")
            assert len(factory.live_players) == 2
            browser.close("m1")
            assert browser.session_at("m1") is None
            assert len(factory.live_players) == 1
            await browser.aclose()

        asyncio.run(_run())
