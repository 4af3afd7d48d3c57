"""Shared pytest fixtures and configuration for the yt-resume test suite.

Guidelines
----------
* No internet access in any test.
* httpx is exercised through ``httpx.MockTransport``; yt-dlp is mocked
  at the infra boundary.
* Core tests must be pure — no side effects.
* Tests must not depend on OS state (databases live in ``tmp_path`` or
  ``:memory:``).
* Async code runs through ``asyncio.run`` inside plain test functions.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from yt_resume.config import Settings
from yt_resume.core.models import PlaylistResolution, VideoRef, default_thumbnail

RendererFactory = Callable[..., dict[str, Any]]
HtmlFactory = Callable[[Sequence[dict[str, Any]]], str]


def _renderer(
    video_id: str,
    title: str | None = None,
    thumbnail: str | None = None,
    *,
    simple_title: bool = False,
) -> dict[str, Any]:
    renderer: dict[str, Any] = {"videoId": video_id}
    if title is not None:
        renderer["title"] = (
            {"simpleText": title} if simple_title else {"runs": [{"text": title}]}
        )
    if thumbnail is not None:
        renderer["thumbnail"] = {"thumbnails": [{"url": thumbnail, "width": 168}]}
    return renderer


@pytest.fixture
def renderer() -> RendererFactory:
    """Build one ``playlistVideoRenderer`` dict."""
    return _renderer


@pytest.fixture
def hydration_html() -> HtmlFactory:
    """Build a playlist page whose ``ytInitialData`` holds *renderers*."""

    def _build(renderers: Sequence[dict[str, Any]]) -> str:
        data = {
            "contents": {
                "twoColumnBrowseResultsRenderer": {
                    "tabs": [
                        {
                            "tabRenderer": {
                                "content": {
                                    "sectionListRenderer": {
                                        "contents": [
                                            {
                                                "itemSectionRenderer": {
                                                    "contents": [
                                                        {
                                                            "playlistVideoListRenderer": {
                                                                "contents": [
                                                                    {"playlistVideoRenderer": r}
                                                                    for r in renderers
                                                                ]
                                                            }
                                                        }
                                                    ]
                                                }
                                            }
                                        ]
                                    }
                                }
                            }
                        }
                    ]
                }
            }
        }
        return (
            "<html><head><title>Playlist</title></head><body>"
            f"<script>var ytInitialData = {json.dumps(data)};</script>"
            "</body></html>"
        )

    return _build


@pytest.fixture
def renderer_blocks_html() -> HtmlFactory:
    """Build a page with inline renderer blocks but no hydration blob."""

    def _build(renderers: Sequence[dict[str, Any]]) -> str:
        blocks = ",".join(
            '{"playlistVideoRenderer":' + json.dumps(r) + "}" for r in renderers
        )
        return f"<html><body><script>window.items = [{blocks}];</script></body></html>"

    return _build


@pytest.fixture
def make_playlist() -> Callable[..., PlaylistResolution]:
    """Build a resolution from bare ids with ``Video N`` titles."""

    def _build(playlist_id: str, video_ids: Sequence[str]) -> PlaylistResolution:
        return PlaylistResolution(
            playlist_id=playlist_id,
            videos=tuple(
                VideoRef(
                    video_id=video_id,
                    title=f"Video {index}",
                    thumbnail_url=default_thumbnail(video_id),
                )
                for index, video_id in enumerate(video_ids, start=1)
            ),
        )

    return _build


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Isolated settings: test relay prefix and a temp database."""
    return Settings(
        relay_url="https://relay.test/?",
        database_path=tmp_path / "progress.db",
        request_timeout=5.0,
    )
