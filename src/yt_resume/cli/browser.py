"""Playlist browser rendering and video selection for the CLI layer.

This module is responsible for:

* Rendering a Rich table of a playlist's videos and saved offsets.
* Prompting the user to pick a video via questionary arrow keys.
* Rendering URL classifications and checkpoint listings.

All display-related logic lives here — no business logic, no fetching,
no persistence.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from yt_resume.cli.console import stdout
from yt_resume.core.browser import BrowserStatus, BrowserView
from yt_resume.core.models import PlaybackCheckpoint, UrlRef
from yt_resume.core.url_classifier import embed_url
from yt_resume.exceptions import EnvironmentError, InvalidVideoError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive selection."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _import_rich_table() -> type[Any]:
    """Import rich table lazily for rendering."""
    try:
        from rich.table import Table
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Table


# ---------------------------------------------------------------------------
# Presentation helpers (pure transforms, no I/O)
# ---------------------------------------------------------------------------

def format_offset(seconds: float | None) -> str:
    """Render an offset as ``m:ss`` / ``h:mm:ss``, or ``"—"`` when absent."""
    if seconds is None:
        return "—"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _truncate(text: str, width: int = 60) -> str:
    return text if len(text) <= width else text[: width - 1] + "…"


def _build_choice_label(position: int, title: str, offset: float | None) -> str:
    """Build the single-line label shown in the questionary selector.

    Format: ``"  3.  Intro to HTML                       resume 4:05"``
    """
    resume = f"resume {format_offset(offset)}" if offset else ""
    return f"  {position:>2}.  {_truncate(title, 48):<48} {resume}"


# ---------------------------------------------------------------------------
# Rich tables
# ---------------------------------------------------------------------------

def display_playlist(view: BrowserView) -> None:
    """Print a playlist view, or its loading / empty message."""
    if view.status is not BrowserStatus.READY:
        stdout.print(f"[yellow]{view.message}[/yellow]  ({view.playlist_id})")
        return

    table_class = _import_rich_table()
    table = table_class(
        title=f"Playlist {view.playlist_id}",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Video ID", justify="left", min_width=11, no_wrap=True)
    table.add_column("Title", justify="left")
    table.add_column("Resume", justify="right", min_width=7)

    for entry in view.entries:
        marker = "▶ " if entry.is_current else ""
        table.add_row(
            str(entry.position),
            entry.video.video_id,
            marker + _truncate(entry.video.title),
            format_offset(entry.offset_seconds),
        )

    stdout.print(table)


def display_classifications(rows: Sequence[tuple[str, UrlRef]]) -> None:
    """Print one row per classified URL."""
    table_class = _import_rich_table()
    table = table_class(
        title="URL classification",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("URL", overflow="fold")
    table.add_column("Kind", justify="center", no_wrap=True)
    table.add_column("ID", min_width=11, no_wrap=True)
    table.add_column("Embed", overflow="fold")

    for url, ref in rows:
        if ref.playlist_id is not None:
            kind, ident = "playlist", ref.playlist_id
        elif ref.video_id is not None:
            kind, ident = "video", ref.video_id
        else:
            kind, ident = "[red]unknown[/red]", "—"
        table.add_row(url, kind, ident, embed_url(ref) or "—")

    stdout.print(table)


def display_checkpoints(playlist_id: str, checkpoints: Sequence[PlaybackCheckpoint]) -> None:
    """Print stored checkpoints for one playlist."""
    if not checkpoints:
        stdout.print(f"[yellow]No saved progress for playlist {playlist_id}.[/yellow]")
        return

    table_class = _import_rich_table()
    table = table_class(
        title=f"Saved progress — {playlist_id}",
        show_header=True,
        header_style="bold green",
        border_style="dim",
    )
    table.add_column("Video ID", min_width=11, no_wrap=True)
    table.add_column("Offset", justify="right")
    table.add_column("Updated (UTC)")
    for checkpoint in checkpoints:
        table.add_row(
            checkpoint.video_id,
            format_offset(checkpoint.offset_seconds),
            checkpoint.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    stdout.print(table)


# ---------------------------------------------------------------------------
# Public prompt function
# ---------------------------------------------------------------------------

def prompt_video_selection(view: BrowserView, offsets: dict[str, float] | None = None) -> str:
    """Display the playlist and prompt the user for a starting video.

    Returns
    -------
    str
        The chosen ``video_id``.

    Raises
    ------
    InvalidVideoError
        If the playlist is empty or the user cancels the prompt.
    """
    if view.status is not BrowserStatus.READY:
        raise InvalidVideoError(view.message)

    questionary = _import_questionary()
    display_playlist(view)

    known = offsets or {}
    choices = [
        questionary.Choice(
            title=_build_choice_label(
                entry.position,
                entry.video.title,
                known.get(entry.video.video_id, entry.offset_seconds),
            ),
            value=entry.video.video_id,
        )
        for entry in view.entries
    ]

    selected: str | None = questionary.select(
        "Select a video to play:",
        choices=choices,
        use_arrow_keys=True,
        use_shortcuts=False,
    ).ask()  # Returns None on Ctrl+C / Esc

    if selected is None:
        raise InvalidVideoError(
            "No video selected.",
            hint="Use arrow keys to pick a video, then press Enter.",
        )
    return selected
