"""Classify raw course URLs into video / playlist references.

Course records hold free text typed by admins, so :func:`classify`
must accept anything and never raise.  Recognised shapes:

* ``https://www.youtube.com/playlist?list=<id>`` (any path with ``list``)
* ``https://www.youtube.com/watch?v=<id>``
* ``https://youtu.be/<id>``

When the canonical domain carries both ``list`` and ``v`` the playlist
wins: a playlist link that opens on a specific video is still a
playlist for ingestion purposes.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlsplit

from yt_resume.core.models import UrlRef

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_CANONICAL_HOSTS: frozenset[str] = frozenset(
    {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}
)
_SHORT_HOSTS: frozenset[str] = frozenset({"youtu.be", "www.youtu.be"})

_EMPTY = UrlRef()


def is_valid_id(value: str | None) -> bool:
    """Return ``True`` for a non-empty URL-safe token."""
    return bool(value) and _TOKEN_RE.match(value or "") is not None


def _first_param(query: dict[str, list[str]], name: str) -> str | None:
    values = query.get(name)
    if not values:
        return None
    candidate = values[0].strip()
    return candidate if is_valid_id(candidate) else None


def classify(url: str) -> UrlRef:
    """Parse *url* into a :class:`UrlRef`.

    Returns ``UrlRef(None, None)`` for anything malformed or
    unrecognised.
    """
    if not isinstance(url, str):
        return _EMPTY
    stripped = url.strip()
    if not stripped:
        return _EMPTY

    try:
        parts = urlsplit(stripped)
        host = (parts.hostname or "").lower()
    except ValueError:
        return _EMPTY

    if parts.scheme.lower() not in ("http", "https"):
        return _EMPTY

    if host in _CANONICAL_HOSTS:
        query = parse_qs(parts.query)
        playlist_id = _first_param(query, "list")
        if playlist_id is not None:
            return UrlRef(video_id=None, playlist_id=playlist_id)
        video_id = _first_param(query, "v")
        if video_id is not None:
            return UrlRef(video_id=video_id, playlist_id=None)
        return _EMPTY

    if host in _SHORT_HOSTS:
        segment = parts.path.lstrip("/").split("/", 1)[0]
        if is_valid_id(segment):
            return UrlRef(video_id=segment, playlist_id=None)
        return _EMPTY

    return _EMPTY


def embed_url(ref: UrlRef) -> str | None:
    """Return the embeddable player URL for *ref*, or ``None``."""
    if ref.playlist_id is not None:
        return f"https://www.youtube.com/embed/videoseries?list={ref.playlist_id}"
    if ref.video_id is not None:
        return f"https://www.youtube.com/embed/{ref.video_id}"
    return None


def playlist_ids(urls: list[str] | tuple[str, ...]) -> list[str]:
    """Return the distinct playlist ids referenced by *urls*, in order."""
    seen: dict[str, None] = {}
    for raw in urls:
        ref = classify(raw)
        if ref.playlist_id is not None:
            seen.setdefault(ref.playlist_id, None)
    return list(seen)
