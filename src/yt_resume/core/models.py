"""Domain models for yt-resume.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access and serialisation helpers.  They carry
zero I/O and zero dependencies on external packages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

THUMBNAIL_URL_TEMPLATE: str = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"


def default_thumbnail(video_id: str) -> str:
    """Return the predictable CDN thumbnail URL for *video_id*."""
    return THUMBNAIL_URL_TEMPLATE.format(video_id=video_id)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# URL classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class UrlRef:
    """Typed reference extracted from a raw video or playlist URL."""

    video_id: str | None = None
    """Single video id, or ``None``."""

    playlist_id: str | None = None
    """Playlist id, or ``None``.  Takes priority over :attr:`video_id`."""

    @property
    def is_playlist(self) -> bool:
        return self.playlist_id is not None

    @property
    def is_video(self) -> bool:
        return self.video_id is not None

    def __bool__(self) -> bool:
        return self.is_playlist or self.is_video


# ---------------------------------------------------------------------------
# Playlist contents
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class VideoRef:
    """One entry of a resolved playlist.

    Identity is :attr:`video_id`; two refs with the same id are the
    same video even if their titles differ.
    """

    video_id: str
    """11-character YouTube video id (e.g. ``dQw4w9WgXcQ``)."""

    title: str
    """Human-readable title, or a ``Video N`` placeholder."""

    thumbnail_url: str
    """Thumbnail URL, falling back to the ``mqdefault`` CDN image."""

    def to_api_dict(self) -> dict[str, str]:
        """Serialise to the portal's ``/api/playlist`` response shape."""
        return {
            "videoId": self.video_id,
            "title": self.title,
            "thumbnail": self.thumbnail_url,
        }


@dataclass(frozen=True, slots=True)
class PlaylistResolution:
    """The resolved, deduplicated video list of one playlist.

    Created once per playlist per process and never mutated.
    """

    playlist_id: str
    videos: tuple[VideoRef, ...]
    resolved_at: datetime = field(default_factory=_utcnow)

    def __len__(self) -> int:
        return len(self.videos)

    def __bool__(self) -> bool:
        return len(self.videos) > 0

    @property
    def video_ids(self) -> tuple[str, ...]:
        return tuple(video.video_id for video in self.videos)

    def index_of(self, video_id: str) -> int | None:
        """Return the original-order index of *video_id*, or ``None``."""
        for index, video in enumerate(self.videos):
            if video.video_id == video_id:
                return index
        return None


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PlaybackCheckpoint:
    """A saved playback offset for one (user, playlist, video) triple."""

    user_id: str
    playlist_id: str
    video_id: str
    offset_seconds: float
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def doc_key(self) -> str:
        """Composite storage key scoped under the user."""
        return checkpoint_key(self.playlist_id, self.video_id)


def checkpoint_key(playlist_id: str, video_id: str) -> str:
    """Return the composite ``<playlist>_<video>`` storage key."""
    return f"{playlist_id}_{video_id}"


# ---------------------------------------------------------------------------
# Courses (read-only input from the portal database)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Course:
    """A course record as authored by an admin.

    Only :attr:`videos` matters to playlist ingestion: it holds the raw
    YouTube URLs typed into the course form.
    """

    course_id: str
    title: str
    videos: tuple[str, ...] = ()
    language: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Course:
        """Build a course from a loosely-typed document dict."""
        raw_videos = raw.get("videos")
        videos: tuple[str, ...] = ()
        if isinstance(raw_videos, list):
            videos = tuple(str(url) for url in raw_videos if isinstance(url, str))
        return cls(
            course_id=str(raw.get("id", "")),
            title=str(raw.get("title", "Untitled course")),
            videos=videos,
            language=str(raw.get("language", "")),
            description=str(raw.get("description", "")),
        )


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class PlayerState(enum.IntEnum):
    """Player state codes, numbered like the IFrame player API."""

    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5
