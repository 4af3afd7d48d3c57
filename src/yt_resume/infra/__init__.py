"""Infrastructure layer — external system integration.

This layer wraps all interaction with the CORS relay (httpx), yt-dlp,
SQLite and the player backend.  Every raw third-party exception must
be caught here and re-raised as a
:class:`~yt_resume.exceptions.YtResumeError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from yt_resume.infra.memory_store import InMemoryProgressStore
from yt_resume.infra.relay_client import RelayPageSource
from yt_resume.infra.sqlite_store import SqliteProgressStore
from yt_resume.infra.virtual_player import (
    ManualClock,
    VirtualPlayer,
    VirtualPlayerFactory,
    load_virtual_player_api,
)
from yt_resume.infra.ytdlp_source import YtDlpPlaylistSource

__all__: list[str] = [
    "InMemoryProgressStore",
    "ManualClock",
    "RelayPageSource",
    "SqliteProgressStore",
    "VirtualPlayer",
    "VirtualPlayerFactory",
    "YtDlpPlaylistSource",
    "load_virtual_player_api",
]
