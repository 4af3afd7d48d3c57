"""Custom exception hierarchy for yt-resume.

All exceptions that cross layer boundaries must inherit from
:class:`YtResumeError`.  Raw third-party exceptions (httpx, sqlite3,
yt-dlp) must NEVER propagate beyond the infrastructure layer — they
are caught there and re-raised as a typed subclass defined here.

Hierarchy
---------
YtResumeError
├── InvalidURLError
├── PlaylistFetchError
├── EmptyPlaylistError
├── InvalidVideoError
├── InvalidCourseError
├── ProgressStoreError
├── PlayerError
│   └── PlayerNotReadyError
├── SessionStateError
└── EnvironmentError
"""

from __future__ import annotations


class YtResumeError(Exception):
    """Base exception for all yt-resume errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- URL classification ----------------------------------------------------

class InvalidURLError(YtResumeError):
    """Raised when a URL names neither a video nor a playlist."""


# --- Playlist resolution ---------------------------------------------------

class PlaylistFetchError(YtResumeError):
    """Raised by page sources when the upstream page cannot be retrieved."""


class EmptyPlaylistError(YtResumeError):
    """Raised when a session is requested for a playlist with no videos."""


class InvalidVideoError(YtResumeError):
    """Raised when a video id is not part of the session's playlist."""


class InvalidCourseError(YtResumeError):
    """Raised when a course document cannot be read or parsed."""


# --- Progress persistence --------------------------------------------------

class ProgressStoreError(YtResumeError):
    """Raised by progress stores when a read or write fails."""


# --- Player ----------------------------------------------------------------

class PlayerError(YtResumeError):
    """Raised by player backends for any player-level failure."""


class PlayerNotReadyError(PlayerError):
    """Raised when the player cannot report duration or time yet."""


class SessionStateError(YtResumeError):
    """Raised when a session operation is invalid in its current state."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(YtResumeError):
    """Raised when a required runtime dependency is not available."""


def append_relay_hint(hint: str) -> str:
    """Append relay troubleshooting guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "The CORS relay may be down or rate limited:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    set YT_RESUME_RELAY_URL or retry with --source ytdlp",
        )
    )
