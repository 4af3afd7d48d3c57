"""Tests for URL classification (core/url_classifier.py).

Coverage:
* Every recognised URL family.
* ``list`` wins over ``v`` on the canonical domain.
* Malformed and foreign input yields an empty reference, never raises.
* Embed URLs and the distinct-playlist helper.
"""

from __future__ import annotations

import pytest

from yt_resume.core.models import UrlRef
from yt_resume.core.url_classifier import (
    classify,
    embed_url,
    is_valid_id,
    playlist_ids,
)


class TestClassifyFamilies:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/playlist?list=PL123",
            "https://youtube.com/playlist?list=PL123",
            "http://m.youtube.com/playlist?list=PL123",
            "https://music.youtube.com/playlist?list=PL123",
        ],
    )
    def test_playlist_urls(self, url: str) -> None:
        assert classify(url) == UrlRef(video_id=None, playlist_id="PL123")

    def test_watch_url(self) -> None:
        assert classify("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == UrlRef(
            video_id="dQw4w9WgXcQ"
        )

    def test_short_url(self) -> None:
        assert classify("https://youtu.be/dQw4w9WgXcQ") == UrlRef(video_id="dQw4w9WgXcQ")

    def test_short_url_ignores_query(self) -> None:
        assert classify("https://youtu.be/dQw4w9WgXcQ?t=42").video_id == "dQw4w9WgXcQ"

    def test_list_takes_priority_over_v(self) -> None:
        ref = classify("https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PL123")
        assert ref == UrlRef(video_id=None, playlist_id="PL123")

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert classify("  https://youtu.be/dQw4w9WgXcQ \n").video_id == "dQw4w9WgXcQ"


class TestClassifyRejects:
    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            "not a url",
            "ftp://www.youtube.com/playlist?list=PL123",
            "https://vimeo.com/12345",
            "https://evil.example/playlist?list=PL123",
            "https://www.youtube.com/",
            "https://www.youtube.com/watch?v=",
            "https://www.youtube.com/watch?v=bad%20id",
            "https://youtu.be/",
            "http://[::1",
        ],
    )
    def test_unrecognised_returns_empty(self, url: str) -> None:
        assert classify(url) == UrlRef()

    def test_non_string_input(self) -> None:
        assert classify(None) == UrlRef()  # type: ignore[arg-type]


class TestHelpers:
    def test_is_valid_id(self) -> None:
        assert is_valid_id("PL_abc-123")
        assert not is_valid_id("")
        assert not is_valid_id(None)
        assert not is_valid_id("a b")

    def test_embed_url_for_playlist(self) -> None:
        assert embed_url(UrlRef(playlist_id="PL1")) == (
            "https://www.youtube.com/embed/videoseries?list=PL1"
        )

    def test_embed_url_for_video(self) -> None:
        assert embed_url(UrlRef(video_id="dQw4w9WgXcQ")) == (
            "https://www.youtube.com/embed/dQw4w9WgXcQ"
        )

    def test_embed_url_for_empty(self) -> None:
        assert embed_url(UrlRef()) is None

    def test_playlist_ids_distinct_in_order(self) -> None:
        urls = [
            "https://www.youtube.com/playlist?list=PL2",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/playlist?list=PL1",
            "https://m.youtube.com/watch?v=x&list=PL2",
            "garbage",
        ]
        assert playlist_ids(urls) == ["PL2", "PL1"]
