"""Rich-based playback display driven by a live session.

This module bridges a :class:`~yt_resume.core.session.PlaybackSession`
with a Rich :class:`~rich.progress.Progress` bar.  It is used by the
CLI ``play`` command; the core layer knows nothing about it.

Design
------
* The :class:`RichPlaybackProgress` manages a Rich Progress context.
* :meth:`__call__` samples the session and refreshes one task per video.
* Shutdown-safe: if the progress bar is already stopped, calls are
  silently ignored.
* No ``print()`` — Rich handles all rendering.
"""

from __future__ import annotations

from typing import Any

from yt_resume.cli.console import get_rich_console
from yt_resume.core.session import PlaybackSession, SessionState
from yt_resume.exceptions import EnvironmentError, PlayerError

# States in which the player reports a meaningful duration.
_SETTLED_STATES = frozenset(
    {SessionState.READY, SessionState.PLAYING, SessionState.PAUSED, SessionState.ENDED}
)


class RichPlaybackProgress:
    """Callable session sampler rendering a Rich progress bar.

    Usage::

        with RichPlaybackProgress() as bar:
            while running:
                bar(session)
    """

    def __init__(self) -> None:
        try:
            from rich.progress import (
                BarColumn,
                Progress,
                SpinnerColumn,
                TextColumn,
            )
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._progress: Any = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.fields[position]}"),
            TextColumn("[dim]{task.fields[state]}"),
            console=get_rich_console(),
            transient=False,
        )
        self._tasks: dict[str, int] = {}
        self._started: bool = False

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> RichPlaybackProgress:
        self.start()
        return self

    def __exit__(self, *_args: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the Rich progress display."""
        if not self._started:
            self._progress.start()
            self._started = True

    def stop(self) -> None:
        """Stop the Rich progress display (idempotent)."""
        if self._started:
            self._progress.stop()
            self._started = False

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def __call__(self, session: PlaybackSession) -> None:
        """Refresh the bar for the session's current video."""
        if not self._started:
            return

        video_id = session.current_video_id
        position, duration = _sample(session)

        task_id = self._tasks.get(video_id)
        if task_id is None:
            resolution = session.playlist
            index = resolution.index_of(video_id)
            title = resolution.videos[index].title if index is not None else video_id
            if len(title) > 40:
                title = title[:37] + "..."
            task_id = self._progress.add_task(
                title,
                total=duration,
                position="",
                state=session.state.value,
            )
            self._tasks[video_id] = task_id

        fields: dict[str, Any] = {
            "state": session.state.value,
            "position": _format_position(position, duration),
        }
        if duration is not None:
            fields["total"] = duration
        if position is not None:
            fields["completed"] = position
        self._progress.update(task_id, **fields)


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

def _sample(session: PlaybackSession) -> tuple[float | None, float | None]:
    """Read (position, duration) from the live player, ``None`` when unknown."""
    player = session.player
    if player is None or session.state not in _SETTLED_STATES:
        return None, None
    try:
        position = float(player.get_current_time())
        duration = float(player.get_duration())
    except (PlayerError, TypeError, ValueError):
        return None, None
    return position, duration if duration > 0 else None


def _format_position(position: float | None, duration: float | None) -> str:
    if position is None:
        return "--:--"
    shown = f"{int(position) // 60}:{int(position) % 60:02d}"
    if duration is None:
        return shown
    return f"{shown} / {int(duration) // 60}:{int(duration) % 60:02d}"
