"""End-to-end tests for the CLI commands (cli/app.py).

The relay is patched at the infra boundary with canned HTML; the
progress database lives in ``tmp_path``.  No network, no terminal
interaction.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from yt_resume.cli import exit_codes
from yt_resume.cli.app import main
from yt_resume.config import Settings
from yt_resume.exceptions import InvalidCourseError, InvalidURLError
from yt_resume.infra.relay_client import RelayPageSource
from yt_resume.infra.sqlite_store import SqliteProgressStore

A = "aaaaaaaaaaa"
B = "bbbbbbbbbbb"


@pytest.fixture
def page(hydration_html: Any, renderer: Any) -> str:
    return hydration_html([renderer(A, "Intro"), renderer(B, "Setup"), renderer(A, "Dup")])


def _patch_relay(html: str) -> Any:
    return patch.object(
        RelayPageSource, "fetch_playlist_html", new=AsyncMock(return_value=html)
    )


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------

class TestClassifyCommand:
    def test_prints_kinds(self, capsys: pytest.CaptureFixture[str], settings: Settings) -> None:
        code = main(
            [
                "classify",
                "https://www.youtube.com/playlist?list=PL123",
                "https://youtu.be/dQw4w9WgXcQ",
            ],
            settings=settings,
        )
        assert code == exit_codes.SUCCESS
        out = capsys.readouterr().out
        assert "playlist" in out
        assert "PL123" in out
        assert "dQw4w9WgXcQ" in out

    def test_nothing_recognised(self, settings: Settings) -> None:
        with pytest.raises(InvalidURLError):
            main(["classify", "https://vimeo.com/1"], settings=settings)


# ---------------------------------------------------------------------------
# playlist
# ---------------------------------------------------------------------------

class TestPlaylistCommand:
    def test_json_payload(
        self, capsys: pytest.CaptureFixture[str], settings: Settings, page: str
    ) -> None:
        with _patch_relay(page):
            code = main(["playlist", "PL123", "--json"], settings=settings)
        assert code == exit_codes.SUCCESS
        payload = json.loads(capsys.readouterr().out)
        assert payload == {
            "videos": [
                {
                    "videoId": A,
                    "title": "Intro",
                    "thumbnail": f"https://img.youtube.com/vi/{A}/mqdefault.jpg",
                },
                {
                    "videoId": B,
                    "title": "Setup",
                    "thumbnail": f"https://img.youtube.com/vi/{B}/mqdefault.jpg",
                },
            ]
        }

    def test_accepts_playlist_url(
        self, capsys: pytest.CaptureFixture[str], settings: Settings, page: str
    ) -> None:
        with _patch_relay(page) as fetch:
            code = main(
                ["playlist", "https://www.youtube.com/watch?v=x&list=PL123"],
                settings=settings,
            )
        assert code == exit_codes.SUCCESS
        fetch.assert_awaited_once_with("PL123")
        assert "Setup" in capsys.readouterr().out

    def test_no_videos_exit_code(self, settings: Settings) -> None:
        with _patch_relay("<html></html>"):
            code = main(["playlist", "PL123"], settings=settings)
        assert code == exit_codes.NO_VIDEOS

    def test_rejects_video_url(self, settings: Settings) -> None:
        with pytest.raises(InvalidURLError):
            main(["playlist", "https://youtu.be/dQw4w9WgXcQ"], settings=settings)


# ---------------------------------------------------------------------------
# course
# ---------------------------------------------------------------------------

class TestCourseCommand:
    def test_resolves_each_playlist(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
        settings: Settings,
        page: str,
    ) -> None:
        course_file = tmp_path / "courses.json"
        course_file.write_text(
            json.dumps(
                {
                    "courses": [
                        {
                            "id": "c1",
                            "title": "Web Basics",
                            "videos": [
                                "https://www.youtube.com/playlist?list=PL123",
                                "https://youtu.be/dQw4w9WgXcQ",
                            ],
                            "language": "en",
                        }
                    ]
                }
            )
        )
        with _patch_relay(page) as fetch:
            code = main(["course", str(course_file)], settings=settings)
        assert code == exit_codes.SUCCESS
        fetch.assert_awaited_once_with("PL123")
        captured = capsys.readouterr()
        assert "Web Basics" in captured.err
        assert "Intro" in captured.out

    def test_invalid_json(self, tmp_path: Path, settings: Settings) -> None:
        course_file = tmp_path / "broken.json"
        course_file.write_text("{not json")
        with pytest.raises(InvalidCourseError):
            main(["course", str(course_file)], settings=settings)

    def test_missing_file(self, tmp_path: Path, settings: Settings) -> None:
        with pytest.raises(InvalidCourseError):
            main(["course", str(tmp_path / "nope.json")], settings=settings)


# ---------------------------------------------------------------------------
# play / progress
# ---------------------------------------------------------------------------

class TestPlayCommand:
    @pytest.fixture
    def fast_settings(self, tmp_path: Path) -> Settings:
        return Settings(
            relay_url="https://relay.test/?",
            database_path=tmp_path / "progress.db",
            duration_poll_interval=0.01,
        )

    def test_play_saves_checkpoint(self, fast_settings: Settings, page: str) -> None:
        with _patch_relay(page):
            code = main(
                ["play", "PL123", "--user", "u1", "--start", B, "--seconds", "1"],
                settings=fast_settings,
            )
        assert code == exit_codes.SUCCESS

        store = SqliteProgressStore(fast_settings.database_path)
        try:
            offset = asyncio.run(store.get_checkpoint("u1", "PL123", B))
        finally:
            store.close()
        assert offset is not None
        assert offset >= 0.0

    def test_play_reads_checkpoints_once(self, fast_settings: Settings, page: str) -> None:
        store = SqliteProgressStore(fast_settings.database_path)
        try:
            asyncio.run(store.save_checkpoint("u1", "PL123", B, 3.0))
        finally:
            store.close()

        original = SqliteProgressStore.get_checkpoints_for_playlist
        reads: list[tuple[Any, ...]] = []

        async def counting(self: SqliteProgressStore, *args: Any) -> Any:
            reads.append(args)
            return await original(self, *args)

        with _patch_relay(page), patch.object(
            SqliteProgressStore, "get_checkpoints_for_playlist", new=counting
        ):
            code = main(
                ["play", "PL123", "--user", "u1", "--start", B, "--seconds", "0.5"],
                settings=fast_settings,
            )
        assert code == exit_codes.SUCCESS
        assert len(reads) == 1

    def test_play_prompts_without_start(self, fast_settings: Settings, page: str) -> None:
        with _patch_relay(page), patch(
            "yt_resume.cli.browser.prompt_video_selection", return_value=A
        ) as prompt:
            code = main(
                ["play", "PL123", "--user", "u1", "--seconds", "0.5"],
                settings=fast_settings,
            )
        assert code == exit_codes.SUCCESS
        view = prompt.call_args.args[0]
        assert [e.video.video_id for e in view.entries] == [A, B]

    def test_progress_lists_checkpoints(
        self, capsys: pytest.CaptureFixture[str], settings: Settings
    ) -> None:
        store = SqliteProgressStore(settings.database_path)
        try:
            asyncio.run(store.save_checkpoint("u1", "PL123", B, 42.5))
        finally:
            store.close()

        code = main(["progress", "PL123", "--user", "u1"], settings=settings)
        assert code == exit_codes.SUCCESS
        out = capsys.readouterr().out
        assert B in out
        assert "0:42" in out

    def test_progress_empty(
        self, capsys: pytest.CaptureFixture[str], settings: Settings
    ) -> None:
        code = main(["progress", "PL123", "--user", "nobody"], settings=settings)
        assert code == exit_codes.SUCCESS
        assert "No saved progress" in capsys.readouterr().out
