"""Process-lifetime cache of resolved playlists.

One :class:`PlaylistCache` is shared by every browser and session on a
page.  Entries are populated lazily ("fetch if absent"), never evicted
and never refreshed.  Concurrent requests for the same uncached id
share a single in-flight fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from yt_resume.core.extraction import dedupe_videos
from yt_resume.core.models import Course, PlaylistResolution
from yt_resume.core.protocols import PlaylistSource
from yt_resume.core.url_classifier import is_valid_id, playlist_ids

logger = logging.getLogger(__name__)


class PlaylistCache:
    """Read-through ``playlist_id -> PlaylistResolution`` map.

    Parameters
    ----------
    source:
        Resolves uncached playlists.  Failures of the source are logged
        and cached as an empty resolution.
    """

    def __init__(self, source: PlaylistSource) -> None:
        self._source: PlaylistSource = source
        self._entries: dict[str, PlaylistResolution] = {}
        self._inflight: dict[str, asyncio.Task[PlaylistResolution]] = {}

    # ------------------------------------------------------------------
    # Synchronous access
    # ------------------------------------------------------------------

    def __contains__(self, playlist_id: object) -> bool:
        return playlist_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, playlist_id: str) -> PlaylistResolution | None:
        """Return the cached resolution, or ``None`` if not resolved yet."""
        return self._entries.get(playlist_id)

    def put(self, resolution: PlaylistResolution) -> None:
        """Store *resolution*, replacing any previous one wholesale."""
        self._entries[resolution.playlist_id] = resolution

    def is_loading(self, playlist_id: str) -> bool:
        return playlist_id in self._inflight

    def unresolved(self, playlist_ids_: Iterable[str]) -> list[str]:
        """Return the distinct ids of *playlist_ids_* not cached yet."""
        pending: dict[str, None] = {}
        for playlist_id in playlist_ids_:
            if is_valid_id(playlist_id) and playlist_id not in self._entries:
                pending.setdefault(playlist_id, None)
        return list(pending)

    # ------------------------------------------------------------------
    # Read-through fetch
    # ------------------------------------------------------------------

    async def get_or_fetch(self, playlist_id: str) -> PlaylistResolution:
        """Return the resolution for *playlist_id*, fetching it once if absent."""
        cached = self._entries.get(playlist_id)
        if cached is not None:
            return cached

        task = self._inflight.get(playlist_id)
        if task is None:
            task = asyncio.create_task(self._fetch(playlist_id))
            self._inflight[playlist_id] = task
            task.add_done_callback(
                lambda _done, key=playlist_id: self._inflight.pop(key, None)
            )
        # Shield so one cancelled waiter does not abort the shared fetch.
        return await asyncio.shield(task)

    async def resolve_many(
        self,
        playlist_ids_: Iterable[str],
    ) -> dict[str, PlaylistResolution]:
        """Resolve every id in *playlist_ids_*, fetching each at most once.

        Returns a mapping for all valid ids, cached or freshly fetched.
        """
        wanted: dict[str, None] = {}
        for playlist_id in playlist_ids_:
            if is_valid_id(playlist_id):
                wanted.setdefault(playlist_id, None)

        pending = self.unresolved(wanted)
        if pending:
            logger.debug("Resolving %d uncached playlists: %s", len(pending), pending)
            await asyncio.gather(*(self.get_or_fetch(pid) for pid in pending))

        return {pid: self._entries[pid] for pid in wanted if pid in self._entries}

    async def resolve_course(self, course: Course) -> dict[str, PlaylistResolution]:
        """Resolve every playlist referenced by *course*'s video URLs."""
        return await self.resolve_many(playlist_ids(course.videos))

    async def _fetch(self, playlist_id: str) -> PlaylistResolution:
        try:
            videos = await self._source.fetch_playlist_videos(playlist_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Playlist %s could not be resolved: %s", playlist_id, exc)
            videos = []

        resolution = PlaylistResolution(
            playlist_id=playlist_id,
            videos=tuple(dedupe_videos(videos)),
        )
        self._entries[playlist_id] = resolution
        return resolution
