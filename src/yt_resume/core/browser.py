"""Playlist browser — the presentation boundary over cache and sessions.

:class:`PlaylistBrowser` is what a page (or the CLI) talks to.  It
batches playlist resolution through the shared
:class:`~yt_resume.core.playlist_cache.PlaylistCache`, exposes a
render-ready :class:`BrowserView` for each playlist, and owns at most
one :class:`~yt_resume.core.session.PlaybackSession` per mount point,
tearing the old one down before a new one takes the slot.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from yt_resume.core.loader import SharedInitializer
from yt_resume.core.models import Course, PlaylistResolution, VideoRef
from yt_resume.core.playlist_cache import PlaylistCache
from yt_resume.core.polling import SleepFn
from yt_resume.core.progress import ProgressRecorder
from yt_resume.core.protocols import PlayerFactory
from yt_resume.core.session import (
    DEFAULT_CHECKPOINT_INTERVAL,
    DEFAULT_DURATION_POLL_INTERVAL,
    PlaybackSession,
)
from yt_resume.exceptions import EmptyPlaylistError

logger = logging.getLogger(__name__)


class BrowserStatus(enum.Enum):
    LOADING = "loading"
    NO_VIDEOS = "no-videos"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class BrowserEntry:
    """One row of the playlist sidebar."""

    position: int
    video: VideoRef
    is_current: bool
    offset_seconds: float | None


@dataclass(frozen=True, slots=True)
class BrowserView:
    """Render-ready state of one playlist."""

    playlist_id: str
    status: BrowserStatus
    entries: tuple[BrowserEntry, ...] = ()
    current_video_id: str | None = None

    @property
    def message(self) -> str:
        if self.status is BrowserStatus.LOADING:
            return "Loading playlist…"
        if self.status is BrowserStatus.NO_VIDEOS:
            return "No videos available for this playlist."
        return f"{len(self.entries)} videos"


def build_view(
    playlist_id: str,
    resolution: PlaylistResolution | None,
    *,
    current_video_id: str | None = None,
    offsets: dict[str, float] | None = None,
) -> BrowserView:
    """Compute the view for *playlist_id* from its (possibly missing) resolution."""
    if resolution is None:
        return BrowserView(playlist_id=playlist_id, status=BrowserStatus.LOADING)
    if not resolution:
        return BrowserView(playlist_id=playlist_id, status=BrowserStatus.NO_VIDEOS)

    known = offsets or {}
    entries = tuple(
        BrowserEntry(
            position=index,
            video=video,
            is_current=video.video_id == current_video_id,
            offset_seconds=known.get(video.video_id),
        )
        for index, video in enumerate(resolution.videos, start=1)
    )
    return BrowserView(
        playlist_id=playlist_id,
        status=BrowserStatus.READY,
        entries=entries,
        current_video_id=current_video_id,
    )


class PlaylistBrowser:
    """Coordinates playlist resolution and player sessions for one user.

    Parameters
    ----------
    cache:
        Shared playlist cache.
    recorder:
        Checkpoint persistence used by every session.
    player_api:
        Shared, memoized player-library loader.
    user_id:
        The signed-in user.
    """

    def __init__(
        self,
        cache: PlaylistCache,
        recorder: ProgressRecorder,
        player_api: SharedInitializer[PlayerFactory],
        user_id: str,
        *,
        checkpoint_interval: float = DEFAULT_CHECKPOINT_INTERVAL,
        duration_poll_interval: float = DEFAULT_DURATION_POLL_INTERVAL,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.cache = cache
        self.recorder = recorder
        self.player_api = player_api
        self.user_id = user_id
        self._checkpoint_interval = checkpoint_interval
        self._poll_interval = duration_poll_interval
        self._sleep = sleep
        self._sessions: dict[str, PlaybackSession] = {}

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def refresh(self, playlist_ids: Iterable[str]) -> dict[str, PlaylistResolution]:
        """Resolve every not-yet-cached playlist in one batch."""
        return await self.cache.resolve_many(playlist_ids)

    async def refresh_course(self, course: Course) -> dict[str, PlaylistResolution]:
        return await self.cache.resolve_course(course)

    def view(self, playlist_id: str, *, mount_id: str | None = None) -> BrowserView:
        """Render state for *playlist_id*, highlighting the mount's session."""
        session = self._sessions.get(mount_id) if mount_id is not None else None
        if session is not None and session.playlist.playlist_id != playlist_id:
            session = None
        return build_view(
            playlist_id,
            self.cache.get(playlist_id),
            current_video_id=session.current_video_id if session else None,
            offsets=session.offsets if session else None,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session_at(self, mount_id: str) -> PlaybackSession | None:
        return self._sessions.get(mount_id)

    async def open(
        self,
        playlist_id: str,
        *,
        mount_id: str,
        start_video_id: str | None = None,
        offsets: Mapping[str, float] | None = None,
    ) -> PlaybackSession:
        """Start a session for *playlist_id* in *mount_id*.

        Any session already occupying the mount is torn down first.
        *offsets*, when the caller already read them, spare the session
        its own checkpoint prefetch.

        Raises
        ------
        EmptyPlaylistError
            If the playlist resolved to no videos.
        """
        resolution = await self.cache.get_or_fetch(playlist_id)
        if not resolution:
            raise EmptyPlaylistError(
                f"No videos available for playlist {playlist_id}.",
                hint="The playlist may be private, empty, or could not be scraped.",
            )

        self.close(mount_id)
        session = PlaybackSession(
            resolution,
            start_video_id=start_video_id,
            mount_id=mount_id,
            user_id=self.user_id,
            recorder=self.recorder,
            player_api=self.player_api,
            checkpoint_interval=self._checkpoint_interval,
            duration_poll_interval=self._poll_interval,
            sleep=self._sleep,
            prefetched_offsets=offsets,
        )
        self._sessions[mount_id] = session
        await session.start()
        return session

    def close(self, mount_id: str) -> None:
        """Tear down the session in *mount_id*, if any."""
        session = self._sessions.pop(mount_id, None)
        if session is not None:
            session.teardown()

    async def aclose(self) -> None:
        """Tear down every session and wait for their pending saves."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.teardown()
        for session in sessions:
            await session.flush()
