"""Playlist page extraction strategies.

Three independent strategies of decreasing reliability pull
:class:`~yt_resume.core.models.VideoRef` entries out of a playlist page:

* :class:`HydrationDataStrategy` — parse the ``ytInitialData`` blob and
  walk the known key path to the playlist item renderers.
* :class:`RendererBlockStrategy` — scan the raw HTML for inline
  ``playlistVideoRenderer`` objects and decode each one on its own.
* :class:`BareIdStrategy` — regex every ``"videoId"`` token, capped.

Every strategy satisfies
:class:`~yt_resume.core.protocols.ExtractionStrategy`, so callers can
reorder or replace them.  All parsing here is pure: no I/O.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Sequence
from typing import Any

from yt_resume.core.models import VideoRef, default_thumbnail
from yt_resume.core.protocols import ExtractionStrategy

logger = logging.getLogger(__name__)

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

_HYDRATION_RE = re.compile(
    r"""(?:var\s+ytInitialData|window\[["']ytInitialData["']\])\s*=\s*(?=\{)"""
)
_RENDERER_MARKER_RE = re.compile(r'"playlistVideoRenderer"\s*:\s*(?=\{)')
_BARE_ID_RE = re.compile(r'"videoId"\s*:\s*"([A-Za-z0-9_-]{11})"')

# contents.twoColumnBrowseResultsRenderer.tabs[0]...playlistVideoListRenderer.contents
_PLAYLIST_ITEMS_PATH: tuple[str | int, ...] = (
    "contents",
    "twoColumnBrowseResultsRenderer",
    "tabs",
    0,
    "tabRenderer",
    "content",
    "sectionListRenderer",
    "contents",
    0,
    "itemSectionRenderer",
    "contents",
    0,
    "playlistVideoListRenderer",
    "contents",
)

_decoder = json.JSONDecoder()


# ---------------------------------------------------------------------------
# Shared helpers (pure)
# ---------------------------------------------------------------------------

def dig(data: Any, path: Iterable[str | int]) -> Any:
    """Follow *path* through nested dicts/lists, ``None`` when it breaks."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def _extract_title(renderer: dict[str, Any], position: int) -> str:
    title = renderer.get("title")
    if isinstance(title, dict):
        runs = title.get("runs")
        if isinstance(runs, list):
            text = "".join(
                str(run.get("text", "")) for run in runs if isinstance(run, dict)
            ).strip()
            if text:
                return text
        simple = title.get("simpleText")
        if isinstance(simple, str) and simple.strip():
            return simple.strip()
    return f"Video {position}"


def _extract_thumbnail(renderer: dict[str, Any], video_id: str) -> str:
    thumbnails = dig(renderer, ("thumbnail", "thumbnails"))
    if isinstance(thumbnails, list):
        for thumb in thumbnails:
            url = thumb.get("url") if isinstance(thumb, dict) else None
            if isinstance(url, str) and url:
                return url
    return default_thumbnail(video_id)


def video_from_renderer(renderer: Any, position: int) -> VideoRef | None:
    """Convert one ``playlistVideoRenderer`` dict into a :class:`VideoRef`.

    *position* is the 1-based slot the video would take in the result
    and only feeds the ``Video N`` placeholder title.
    """
    if not isinstance(renderer, dict):
        return None
    video_id = renderer.get("videoId")
    if not isinstance(video_id, str) or not VIDEO_ID_RE.match(video_id):
        return None
    return VideoRef(
        video_id=video_id,
        title=_extract_title(renderer, position),
        thumbnail_url=_extract_thumbnail(renderer, video_id),
    )


class VideoCollector:
    """Ordered accumulator that drops any ``video_id`` seen before."""

    def __init__(self, limit: int | None = None) -> None:
        self._videos: list[VideoRef] = []
        self._seen: set[str] = set()
        self._limit = limit

    def __len__(self) -> int:
        return len(self._videos)

    @property
    def full(self) -> bool:
        return self._limit is not None and len(self._videos) >= self._limit

    @property
    def next_position(self) -> int:
        return len(self._videos) + 1

    def seen(self, video_id: str) -> bool:
        return video_id in self._seen

    def add(self, video: VideoRef | None) -> bool:
        """Append *video* unless it is ``None``, a duplicate, or over the cap."""
        if video is None or video.video_id in self._seen or self.full:
            return False
        self._seen.add(video.video_id)
        self._videos.append(video)
        return True

    def result(self) -> list[VideoRef]:
        return list(self._videos)


def dedupe_videos(videos: Iterable[VideoRef]) -> list[VideoRef]:
    """Drop repeated ids, keeping the first occurrence."""
    collector = VideoCollector()
    for video in videos:
        collector.add(video)
    return collector.result()


# ---------------------------------------------------------------------------
# Strategy A: hydration payload
# ---------------------------------------------------------------------------

class HydrationDataStrategy:
    """Parse the page's ``ytInitialData`` blob."""

    name = "hydration"

    def extract(self, html: str) -> list[VideoRef]:
        data = self._load_initial_data(html)
        if data is None:
            return []

        items = dig(data, _PLAYLIST_ITEMS_PATH)
        if not isinstance(items, list):
            logger.debug("ytInitialData has no playlist item list")
            return []

        collector = VideoCollector()
        for item in items:
            renderer = item.get("playlistVideoRenderer") if isinstance(item, dict) else None
            collector.add(video_from_renderer(renderer, collector.next_position))
        return collector.result()

    @staticmethod
    def _load_initial_data(html: str) -> Any:
        match = _HYDRATION_RE.search(html)
        if match is None:
            logger.debug("No ytInitialData assignment found")
            return None
        try:
            data, _end = _decoder.raw_decode(html, match.end())
        except ValueError as exc:
            logger.debug("ytInitialData is not valid JSON: %s", exc)
            return None
        return data


# ---------------------------------------------------------------------------
# Strategy B: inline renderer blocks
# ---------------------------------------------------------------------------

class RendererBlockStrategy:
    """Decode every inline ``playlistVideoRenderer`` object independently."""

    name = "renderer-blocks"

    def extract(self, html: str) -> list[VideoRef]:
        collector = VideoCollector()
        for match in _RENDERER_MARKER_RE.finditer(html):
            try:
                renderer, _end = _decoder.raw_decode(html, match.end())
            except ValueError:
                continue
            collector.add(video_from_renderer(renderer, collector.next_position))
        return collector.result()


# ---------------------------------------------------------------------------
# Strategy C: bare id scrape
# ---------------------------------------------------------------------------

class BareIdStrategy:
    """Collect any ``"videoId":"..."`` token, first-seen order, capped."""

    name = "bare-ids"

    def __init__(self, limit: int = 20) -> None:
        self.limit = limit

    def extract(self, html: str) -> list[VideoRef]:
        collector = VideoCollector(limit=self.limit)
        for match in _BARE_ID_RE.finditer(html):
            if collector.full:
                break
            video_id = match.group(1)
            if collector.seen(video_id):
                continue
            collector.add(
                VideoRef(
                    video_id=video_id,
                    title=f"Video {collector.next_position}",
                    thumbnail_url=default_thumbnail(video_id),
                )
            )
        return collector.result()


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

def default_strategies(bare_id_limit: int = 20) -> tuple[ExtractionStrategy, ...]:
    """Return the standard A → B → C chain."""
    return (
        HydrationDataStrategy(),
        RendererBlockStrategy(),
        BareIdStrategy(limit=bare_id_limit),
    )


def run_strategies(
    html: str,
    strategies: Sequence[ExtractionStrategy],
) -> tuple[str | None, list[VideoRef]]:
    """Run *strategies* in order, stopping at the first non-empty result.

    Returns the winning strategy name (``None`` when all came up empty)
    and its deduplicated videos.  A strategy that raises is logged and
    skipped.
    """
    for strategy in strategies:
        try:
            videos = dedupe_videos(strategy.extract(html))
        except Exception:  # noqa: BLE001
            logger.warning("Extraction strategy %r failed", strategy.name, exc_info=True)
            continue
        if videos:
            logger.debug("Strategy %r yielded %d videos", strategy.name, len(videos))
            return strategy.name, videos
        logger.debug("Strategy %r yielded nothing, falling through", strategy.name)
    return None, []
