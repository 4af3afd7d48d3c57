"""Core / service layer — domain models, parsing and orchestration.

Rules
-----
* No ``print()`` calls.
* No HTTP, filesystem or database access.
* No imports from ``cli`` or ``infra``.
* Everything external is reached through :mod:`yt_resume.core.protocols`.
"""

from yt_resume.core.browser import BrowserStatus, BrowserView, PlaylistBrowser
from yt_resume.core.loader import SharedInitializer
from yt_resume.core.models import (
    Course,
    PlaybackCheckpoint,
    PlayerState,
    PlaylistResolution,
    UrlRef,
    VideoRef,
)
from yt_resume.core.playlist_cache import PlaylistCache
from yt_resume.core.playlist_fetcher import PlaylistFetcher
from yt_resume.core.progress import ProgressRecorder
from yt_resume.core.protocols import (
    ExtractionStrategy,
    PageSource,
    Player,
    PlayerFactory,
    PlaylistSource,
    ProgressStore,
)
from yt_resume.core.session import PlaybackSession, SessionState, rotate_play_order
from yt_resume.core.url_classifier import classify, embed_url

__all__: list[str] = [
    "BrowserStatus",
    "BrowserView",
    "Course",
    "ExtractionStrategy",
    "PageSource",
    "PlaybackCheckpoint",
    "PlaybackSession",
    "Player",
    "PlayerFactory",
    "PlayerState",
    "PlaylistBrowser",
    "PlaylistCache",
    "PlaylistFetcher",
    "PlaylistResolution",
    "PlaylistSource",
    "ProgressRecorder",
    "ProgressStore",
    "SessionState",
    "SharedInitializer",
    "UrlRef",
    "VideoRef",
    "classify",
    "embed_url",
    "rotate_play_order",
]
