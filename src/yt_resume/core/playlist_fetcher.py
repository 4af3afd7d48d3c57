"""Core playlist fetcher — page retrieval plus the extraction chain.

The fetcher depends on a :class:`~yt_resume.core.protocols.PageSource`
injected at construction time and an ordered list of
:class:`~yt_resume.core.protocols.ExtractionStrategy` objects.

Guarantees
----------
* :meth:`PlaylistFetcher.fetch_playlist_videos` never raises; every
  failure is logged and yields an empty list.
* The result is deduplicated by ``video_id`` in upstream order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from yt_resume.core.extraction import default_strategies, run_strategies
from yt_resume.core.models import VideoRef
from yt_resume.core.protocols import ExtractionStrategy, PageSource
from yt_resume.core.url_classifier import is_valid_id
from yt_resume.exceptions import YtResumeError

logger = logging.getLogger(__name__)


class PlaylistFetcher:
    """Resolve a playlist id to its videos by scraping the playlist page.

    Parameters
    ----------
    source:
        Any object satisfying the :class:`PageSource` protocol.
    strategies:
        Extraction chain, tried in order.  Defaults to
        :func:`~yt_resume.core.extraction.default_strategies`.
    """

    def __init__(
        self,
        source: PageSource,
        strategies: Sequence[ExtractionStrategy] | None = None,
    ) -> None:
        self._source: PageSource = source
        self._strategies: tuple[ExtractionStrategy, ...] = tuple(
            strategies if strategies is not None else default_strategies()
        )

    @property
    def strategies(self) -> tuple[ExtractionStrategy, ...]:
        return self._strategies

    async def fetch_playlist_videos(self, playlist_id: str) -> list[VideoRef]:
        """Return the playlist's videos, or ``[]`` on any failure."""
        if not is_valid_id(playlist_id):
            logger.warning("Refusing to fetch invalid playlist id %r", playlist_id)
            return []

        try:
            html = await self._source.fetch_playlist_html(playlist_id)
        except asyncio.CancelledError:
            raise
        except YtResumeError as exc:
            logger.warning("Playlist %s fetch failed: %s", playlist_id, exc)
            return []
        except Exception:  # noqa: BLE001
            logger.warning("Unexpected error fetching playlist %s", playlist_id, exc_info=True)
            return []

        if not isinstance(html, str) or not html:
            logger.warning("Playlist %s returned an empty page", playlist_id)
            return []

        strategy_name, videos = run_strategies(html, self._strategies)
        if strategy_name is None:
            logger.warning("No videos could be extracted for playlist %s", playlist_id)
        else:
            logger.info(
                "Resolved playlist %s: %d videos via %s",
                playlist_id,
                len(videos),
                strategy_name,
            )
        return videos
