"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from yt_resume.core.models import PlayerState, VideoRef


# ---------------------------------------------------------------------------
# Playlist retrieval
# ---------------------------------------------------------------------------

class PageSource(Protocol):
    """Contract for backends that retrieve the raw playlist page."""

    async def fetch_playlist_html(self, playlist_id: str) -> str:
        """Return the upstream playlist page HTML for *playlist_id*.

        Raises
        ------
        PlaylistFetchError
            On transport errors, timeouts or non-success status codes.
        """
        ...  # pragma: no cover


class PlaylistSource(Protocol):
    """Contract for anything that resolves a playlist to its videos.

    Implementations may raise :class:`~yt_resume.exceptions.YtResumeError`
    subclasses; the playlist cache treats any failure as an empty
    result.
    """

    async def fetch_playlist_videos(self, playlist_id: str) -> list[VideoRef]:
        ...  # pragma: no cover


class ExtractionStrategy(Protocol):
    """One way of pulling videos out of a playlist page.

    Strategies are independent and interchangeable so that any one can
    be replaced when the upstream markup changes.
    """

    name: str

    def extract(self, html: str) -> list[VideoRef]:
        """Return the videos found in *html*, deduplicated, in page order."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Progress persistence
# ---------------------------------------------------------------------------

class ProgressStore(Protocol):
    """Contract for checkpoint persistence backends.

    Implementations map all backend-specific exceptions to
    :class:`~yt_resume.exceptions.ProgressStoreError`.
    """

    async def get_checkpoint(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
    ) -> float | None:
        """Return the saved offset in seconds, or ``None`` when absent."""
        ...  # pragma: no cover

    async def get_checkpoints_for_playlist(
        self,
        user_id: str,
        playlist_id: str,
        video_ids: Sequence[str],
    ) -> Mapping[str, float]:
        """Bulk form of :meth:`get_checkpoint`; absent entries are omitted."""
        ...  # pragma: no cover

    async def save_checkpoint(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
        offset_seconds: float,
    ) -> bool:
        """Upsert the offset for the triple.  Last write wins."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Embedded player
# ---------------------------------------------------------------------------

class PlayerListener(Protocol):
    """Callbacks a player invokes on lifecycle events."""

    def on_ready(self) -> None:
        ...  # pragma: no cover

    def on_state_change(self, state: PlayerState) -> None:
        ...  # pragma: no cover


class Player(Protocol):
    """A live embedded player bound to one mount point.

    :meth:`get_duration` and :meth:`get_current_time` may raise
    :class:`~yt_resume.exceptions.PlayerNotReadyError` while media is
    still loading.
    """

    @property
    def video_id(self) -> str | None:
        ...  # pragma: no cover

    def get_duration(self) -> float:
        ...  # pragma: no cover

    def get_current_time(self) -> float:
        ...  # pragma: no cover

    def seek_to(self, seconds: float) -> None:
        ...  # pragma: no cover

    def play(self) -> None:
        ...  # pragma: no cover

    def pause(self) -> None:
        """Pause playback.

        The resulting ``PAUSED`` event may be delivered before this call
        returns or on a later loop iteration.
        """
        ...  # pragma: no cover

    def destroy(self) -> None:
        """Release the player and free its mount point (idempotent)."""
        ...  # pragma: no cover


class PlayerFactory(Protocol):
    """The loaded player library: creates players at mount points."""

    def create(
        self,
        mount_id: str,
        video_ids: Sequence[str],
        *,
        start_seconds: float,
        listener: PlayerListener,
    ) -> Player:
        """Create a player playing *video_ids* in order from the first.

        Raises
        ------
        PlayerError
            If *mount_id* is still occupied by a live player.
        """
        ...  # pragma: no cover
