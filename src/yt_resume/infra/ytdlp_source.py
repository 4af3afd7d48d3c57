"""yt-dlp backed implementation of :class:`~yt_resume.core.protocols.PlaylistSource`.

An alternative to relay scraping: yt-dlp's flat-playlist extraction
lists the entries without resolving each video.  This module is the
**only** place in the codebase that imports ``yt_dlp``.  All yt-dlp
exceptions are caught here and re-raised as typed
:class:`~yt_resume.exceptions.YtResumeError` subclasses — nothing raw
escapes the infrastructure boundary.
"""

from __future__ import annotations

import asyncio
from typing import Any

from yt_resume.core.extraction import VIDEO_ID_RE, VideoCollector
from yt_resume.core.models import VideoRef, default_thumbnail
from yt_resume.exceptions import EnvironmentError, PlaylistFetchError


class YtDlpPlaylistSource:
    """Concrete :class:`PlaylistSource` backed by the yt-dlp Python API.

    Usage::

        source = YtDlpPlaylistSource()
        videos = await source.fetch_playlist_videos("PL...")

    The blocking yt-dlp call runs in a worker thread so the event loop
    stays responsive.
    """

    # Substrings in yt-dlp error messages that indicate the playlist
    # itself is gone (as opposed to a transient or extraction error).
    _UNAVAILABLE_SIGNALS: tuple[str, ...] = (
        "does not exist",
        "private",
        "unavailable",
        "not available",
        "has been removed",
    )

    @staticmethod
    def _build_opts() -> dict[str, Any]:
        """Return yt-dlp options for listing entries without resolving them."""
        return {
            "quiet": True,
            "no_warnings": True,
            "no_color": True,
            "skip_download": True,
            "extract_flat": "in_playlist",
        }

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    async def fetch_playlist_videos(self, playlist_id: str) -> list[VideoRef]:
        """List the entries of *playlist_id*.

        Raises
        ------
        EnvironmentError
            When yt-dlp is not installed.
        PlaylistFetchError
            For any extraction failure.
        """
        info = await asyncio.to_thread(self._extract, playlist_id)
        return self.parse_entries(info)

    def _extract(self, playlist_id: str) -> dict[str, Any]:
        try:
            import yt_dlp
            import yt_dlp.utils
        except ModuleNotFoundError as exc:
            raise EnvironmentError(
                "yt-dlp is not installed. Install with: pip install yt-dlp",
            ) from exc

        url = f"https://www.youtube.com/playlist?list={playlist_id}"
        try:
            with yt_dlp.YoutubeDL(self._build_opts()) as ydl:
                info: Any = ydl.extract_info(url, download=False)
        except yt_dlp.utils.DownloadError as exc:
            self._raise_mapped(exc)
        except Exception as exc:
            raise PlaylistFetchError(
                f"Unexpected yt-dlp error: {exc}",
            ) from exc

        if not isinstance(info, dict):
            raise PlaylistFetchError(
                "yt-dlp returned no playlist data.",
                hint="The id may not point to a public playlist.",
            )
        return dict(info)  # shallow copy, detached from yt-dlp internals

    # ------------------------------------------------------------------
    # Raw-dict → domain-model parsing (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def parse_entries(info: dict[str, Any]) -> list[VideoRef]:
        """Convert a flat-playlist info dict to deduplicated :class:`VideoRef` s."""
        raw_entries = info.get("entries")
        if not isinstance(raw_entries, list):
            return []

        collector = VideoCollector()
        for entry in raw_entries:
            if not isinstance(entry, dict):
                continue
            video_id = entry.get("id")
            if not isinstance(video_id, str) or not VIDEO_ID_RE.match(video_id):
                continue
            title = entry.get("title")
            thumbnail = default_thumbnail(video_id)
            thumbnails = entry.get("thumbnails")
            if isinstance(thumbnails, list) and thumbnails:
                first = thumbnails[0]
                if isinstance(first, dict) and isinstance(first.get("url"), str):
                    thumbnail = first["url"]
            if not (isinstance(title, str) and title):
                title = f"Video {collector.next_position}"
            collector.add(
                VideoRef(
                    video_id=video_id,
                    title=title,
                    thumbnail_url=thumbnail,
                )
            )
        return collector.result()

    # ------------------------------------------------------------------
    # Exception mapping
    # ------------------------------------------------------------------

    @classmethod
    def _raise_mapped(cls, exc: Exception) -> None:
        """Translate a yt-dlp ``DownloadError`` into :class:`PlaylistFetchError`.

        Every failure maps to the same type; the message only selects the
        hint (gone playlist vs. a yt-dlp that may need upgrading).
        """
        msg_lower = str(exc).lower()
        if any(signal in msg_lower for signal in cls._UNAVAILABLE_SIGNALS):
            hint = "The playlist may be private, removed, or geo-restricted."
        else:
            hint = "Also try updating yt-dlp:\n    pip install --upgrade yt-dlp"
        raise PlaylistFetchError(str(exc), hint=hint) from exc
