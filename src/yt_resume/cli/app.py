"""CLI application entry point and command routing for yt-resume.

This module is the **sole error boundary** for the entire application.
It catches :class:`~yt_resume.exceptions.YtResumeError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core/service
  and infrastructure layers.
* ``print()`` is forbidden outside the CLI layer; Rich console is used
  exclusively.
* This module is the only place that translates between the domain world
  and the OS process exit code.
* Each command drives its async work through :func:`asyncio.run`; the
  interactive video prompt runs between event loops, never inside one.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from yt_resume.cli import exit_codes
from yt_resume.cli.console import configure_logging, console
from yt_resume.config import Settings, get_settings
from yt_resume.exceptions import EmptyPlaylistError, YtResumeError
from yt_resume.version import __version__

logger = logging.getLogger(__name__)

CLI_MOUNT_ID: str = "cli-player"
"""Mount point used by the ``play`` command's headless player."""


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Sub-commands:
    * ``yt-resume classify URL...``
    * ``yt-resume playlist PLAYLIST [--json] [--source relay|ytdlp]``
    * ``yt-resume course FILE``
    * ``yt-resume play PLAYLIST --user USER [--start VIDEO] [--seconds N]``
    * ``yt-resume progress PLAYLIST --user USER``
    * ``yt-resume doctor``
    """
    parser = argparse.ArgumentParser(
        prog="yt-resume",
        description="YouTube playlist ingestion and resumable playback.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    classify_cmd = sub.add_parser("classify", help="Classify video / playlist URLs.")
    classify_cmd.add_argument("urls", nargs="+", metavar="URL")

    playlist_cmd = sub.add_parser("playlist", help="List the videos of a playlist.")
    playlist_cmd.add_argument("playlist", help="Playlist id or URL.")
    playlist_cmd.add_argument(
        "--json",
        action="store_true",
        help="Print the {\"videos\": [...]} API payload instead of a table.",
    )
    playlist_cmd.add_argument(
        "--source",
        choices=("relay", "ytdlp"),
        default="relay",
        help="Scrape through the CORS relay (default) or list with yt-dlp.",
    )

    course_cmd = sub.add_parser("course", help="Resolve every playlist of a course file.")
    course_cmd.add_argument("file", type=Path, help="JSON course document.")
    course_cmd.add_argument("--source", choices=("relay", "ytdlp"), default="relay")

    play_cmd = sub.add_parser("play", help="Run a resumable headless playback session.")
    play_cmd.add_argument("playlist", help="Playlist id or URL.")
    play_cmd.add_argument("--user", required=True, help="User id owning the checkpoints.")
    play_cmd.add_argument("--start", default=None, metavar="VIDEO_ID", help="Video to open on.")
    play_cmd.add_argument(
        "--seconds",
        type=float,
        default=10.0,
        help="Wall-clock seconds to play before pausing (default: 10).",
    )
    play_cmd.add_argument("--source", choices=("relay", "ytdlp"), default="relay")

    progress_cmd = sub.add_parser("progress", help="Show saved checkpoints.")
    progress_cmd.add_argument("playlist", help="Playlist id or URL.")
    progress_cmd.add_argument("--user", required=True)

    sub.add_parser("doctor", help="Run environment diagnostics.")
    return parser


# ---------------------------------------------------------------------------
# Wiring helpers
# ---------------------------------------------------------------------------

def _resolve_playlist_arg(value: str) -> str:
    """Accept a bare playlist id or any URL carrying one."""
    from yt_resume.core.url_classifier import classify, is_valid_id
    from yt_resume.exceptions import InvalidURLError

    ref = classify(value)
    if ref.playlist_id is not None:
        return ref.playlist_id
    if "/" not in value and is_valid_id(value):
        return value
    raise InvalidURLError(
        f"{value!r} is not a playlist id or playlist URL.",
        hint="Pass an id like PLxxxx or a URL containing ?list=PLxxxx.",
    )


class _Services:
    """Per-command bundle of infra adapters and core services."""

    def __init__(self, settings: Settings, source_name: str = "relay") -> None:
        from yt_resume.core.extraction import default_strategies
        from yt_resume.core.playlist_cache import PlaylistCache
        from yt_resume.core.playlist_fetcher import PlaylistFetcher
        from yt_resume.infra.relay_client import RelayPageSource
        from yt_resume.infra.ytdlp_source import YtDlpPlaylistSource

        self.settings = settings
        self._relay: RelayPageSource | None = None
        source: Any
        if source_name == "ytdlp":
            source = YtDlpPlaylistSource()
        else:
            self._relay = RelayPageSource(settings)
            source = PlaylistFetcher(
                self._relay, strategies=default_strategies(settings.bare_id_limit)
            )
        self.cache = PlaylistCache(source)

    async def aclose(self) -> None:
        if self._relay is not None:
            await self._relay.aclose()


def _require_videos(playlist_id: str, resolution: Any) -> None:
    if not resolution:
        raise EmptyPlaylistError(
            f"No videos found for playlist {playlist_id}.",
            hint="The playlist may be private or empty; try --source ytdlp.",
        )


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_classify(urls: list[str]) -> int:
    """Dispatch the ``classify`` command."""
    from yt_resume.cli.browser import display_classifications
    from yt_resume.core.url_classifier import classify
    from yt_resume.exceptions import InvalidURLError

    rows = [(url, classify(url)) for url in urls]
    display_classifications(rows)
    if not any(ref for _, ref in rows):
        raise InvalidURLError(
            "None of the given URLs names a YouTube video or playlist.",
            hint="Supported hosts: youtube.com, m.youtube.com, music.youtube.com, youtu.be.",
        )
    return exit_codes.SUCCESS


def _handle_playlist(value: str, *, as_json: bool, source_name: str, settings: Settings) -> int:
    """Dispatch the ``playlist`` command."""
    from yt_resume.cli.browser import display_playlist
    from yt_resume.core.browser import build_view

    playlist_id = _resolve_playlist_arg(value)

    async def _run() -> Any:
        services = _Services(settings, source_name)
        try:
            return await services.cache.get_or_fetch(playlist_id)
        finally:
            await services.aclose()

    console.print(f"[bold]Fetching playlist…[/bold]  {playlist_id}")
    resolution = asyncio.run(_run())
    _require_videos(playlist_id, resolution)

    if as_json:
        payload = {"videos": [video.to_api_dict() for video in resolution.videos]}
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    else:
        display_playlist(build_view(playlist_id, resolution))
    return exit_codes.SUCCESS


def _load_courses(path: Path) -> list[Any]:
    from yt_resume.core.models import Course
    from yt_resume.exceptions import InvalidCourseError

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidCourseError(f"Cannot read course file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidCourseError(
            f"Course file {path} is not valid JSON: {exc}",
            hint='Expected {"courses": [{"id": ..., "title": ..., "videos": [...]}]}.',
        ) from exc

    documents = raw.get("courses", [raw]) if isinstance(raw, dict) else raw
    if not isinstance(documents, list):
        documents = []
    return [Course.from_dict(doc) for doc in documents if isinstance(doc, dict)]


def _handle_course(path: Path, *, source_name: str, settings: Settings) -> int:
    """Dispatch the ``course`` command."""
    from yt_resume.cli.browser import display_playlist
    from yt_resume.core.browser import build_view
    from yt_resume.core.url_classifier import playlist_ids

    courses = _load_courses(path)
    if not courses:
        console.print(f"[yellow]No courses found in {path}.[/yellow]")
        return exit_codes.SUCCESS

    async def _run() -> list[tuple[Any, dict[str, Any]]]:
        services = _Services(settings, source_name)
        try:
            results = []
            for course in courses:
                results.append((course, await services.cache.resolve_course(course)))
            return results
        finally:
            await services.aclose()

    for course, resolved in asyncio.run(_run()):
        console.print(f"\n[bold]{course.title}[/bold]  [dim]{course.course_id}[/dim]")
        ids = playlist_ids(course.videos)
        if not ids:
            console.print("[dim]No playlist links in this course.[/dim]")
        for playlist_id in ids:
            display_playlist(build_view(playlist_id, resolved.get(playlist_id)))
    return exit_codes.SUCCESS


def _handle_play(
    value: str,
    *,
    user_id: str,
    start_video_id: str | None,
    seconds: float,
    source_name: str,
    settings: Settings,
) -> int:
    """Dispatch the ``play`` command.

    Flow:
    1. Resolve the playlist and prefetch the user's checkpoints.
    2. Prompt for the starting video unless ``--start`` was given.
    3. Run a headless session: seek-and-pause, play for *seconds*,
       checkpoint periodically and on pause.
    4. Show the stored checkpoints.
    """
    from yt_resume.cli.browser import display_checkpoints, prompt_video_selection
    from yt_resume.core.browser import PlaylistBrowser, build_view
    from yt_resume.core.loader import SharedInitializer
    from yt_resume.core.progress import ProgressRecorder
    from yt_resume.infra.sqlite_store import SqliteProgressStore
    from yt_resume.infra.virtual_player import load_virtual_player_api

    playlist_id = _resolve_playlist_arg(value)
    store = SqliteProgressStore(settings.database_path)
    recorder = ProgressRecorder(store)
    services = _Services(settings, source_name)

    async def _prepare() -> tuple[Any, dict[str, float]]:
        try:
            resolution = await services.cache.get_or_fetch(playlist_id)
        finally:
            await services.aclose()
        offsets = await recorder.prefetch(user_id, playlist_id, resolution.video_ids)
        return resolution, offsets

    try:
        console.print(f"[bold]Fetching playlist…[/bold]  {playlist_id}")
        resolution, offsets = asyncio.run(_prepare())
        _require_videos(playlist_id, resolution)

        if start_video_id is None:
            view = build_view(playlist_id, resolution, offsets=offsets)
            start_video_id = prompt_video_selection(view, offsets)

        browser = PlaylistBrowser(
            services.cache,
            recorder,
            SharedInitializer(load_virtual_player_api),
            user_id,
            checkpoint_interval=settings.checkpoint_interval,
            duration_poll_interval=settings.duration_poll_interval,
        )
        asyncio.run(_run_headless(browser, playlist_id, start_video_id, seconds, offsets))
        display_checkpoints(playlist_id, store.list_checkpoints(user_id, playlist_id))
    finally:
        store.close()
    return exit_codes.SUCCESS


async def _run_headless(
    browser: Any,
    playlist_id: str,
    start_video_id: str | None,
    seconds: float,
    offsets: dict[str, float],
) -> None:
    """Play *seconds* of wall-clock time, then pause and flush saves.

    *offsets* were read in the preparation phase and seed the session.
    """
    from yt_resume.cli.playback import RichPlaybackProgress
    from yt_resume.core.session import SessionState

    factory = await browser.player_api.get()
    session = await browser.open(
        playlist_id, mount_id=CLI_MOUNT_ID, start_video_id=start_video_id, offsets=offsets
    )
    if session.seed_offset > 0:
        console.print(
            f"[green]Resuming[/green] {session.current_video_id} "
            f"at {session.seed_offset:.1f}s"
        )

    tick = 0.25
    elapsed = 0.0
    try:
        with RichPlaybackProgress() as bar:
            while elapsed < seconds:
                # Each rebuilt player settles paused; keep playback continuous.
                if session.state is SessionState.READY and session.player is not None:
                    session.player.play()
                factory.tick()
                bar(session)
                await asyncio.sleep(tick)
                elapsed += tick
            if session.player is not None and session.state is SessionState.PLAYING:
                session.player.pause()
            bar(session)
    finally:
        await browser.aclose()


def _handle_progress(value: str, *, user_id: str, settings: Settings) -> int:
    """Dispatch the ``progress`` command."""
    from yt_resume.cli.browser import display_checkpoints
    from yt_resume.infra.sqlite_store import SqliteProgressStore

    playlist_id = _resolve_playlist_arg(value)
    store = SqliteProgressStore(settings.database_path)
    try:
        display_checkpoints(playlist_id, store.list_checkpoints(user_id, playlist_id))
    finally:
        store.close()
    return exit_codes.SUCCESS


def _handle_doctor(settings: Settings) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from yt_resume.cli.doctor import run_doctor

    return run_doctor(settings)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, *, settings: Settings | None = None) -> int:
    """Run the yt-resume CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.
    settings:
        Explicit settings; defaults to :func:`~yt_resume.config.get_settings`.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    settings = settings if settings is not None else get_settings()
    configure_logging(logging.DEBUG if args.verbose else settings.log_level)
    logger.debug("Running %s with %s", args.command, argv)

    try:
        if args.command == "classify":
            return _handle_classify(args.urls)
        if args.command == "playlist":
            return _handle_playlist(
                args.playlist,
                as_json=args.json,
                source_name=args.source,
                settings=settings,
            )
        if args.command == "course":
            return _handle_course(args.file, source_name=args.source, settings=settings)
        if args.command == "play":
            return _handle_play(
                args.playlist,
                user_id=args.user,
                start_video_id=args.start,
                seconds=args.seconds,
                source_name=args.source,
                settings=settings,
            )
        if args.command == "progress":
            return _handle_progress(args.playlist, user_id=args.user, settings=settings)
        if args.command == "doctor":
            return _handle_doctor(settings)
    except EmptyPlaylistError as exc:
        _print_error(exc)
        return exit_codes.NO_VIDEOS

    parser.error(f"unknown command {args.command!r}")
    return exit_codes.GENERAL_ERROR  # pragma: no cover


def _print_error(exc: YtResumeError) -> None:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    if exc.hint:
        console.print(f"[yellow]Hint:[/yellow] {exc.hint}")


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except YtResumeError as exc:
        _print_error(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
