"""Core progress recorder — the safe boundary around a progress store.

Checkpoint persistence must never break playback: a failed read leaves
the seed offset at zero, a failed write is skipped and retried on the
next tick.  :class:`ProgressRecorder` enforces that for any
:class:`~yt_resume.core.protocols.ProgressStore`.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence

from yt_resume.core.protocols import ProgressStore

logger = logging.getLogger(__name__)


def normalize_offset(value: object) -> float | None:
    """Return *value* as a non-negative finite float, or ``None``.

    Booleans and non-numeric values are rejected; negative offsets are
    clamped to zero.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    offset = float(value)
    if not math.isfinite(offset):
        return None
    return max(offset, 0.0)


class ProgressRecorder:
    """Fail-open wrapper over a :class:`ProgressStore`.

    Parameters
    ----------
    store:
        Any object satisfying the :class:`ProgressStore` protocol.
    """

    def __init__(self, store: ProgressStore) -> None:
        self._store: ProgressStore = store

    @property
    def store(self) -> ProgressStore:
        return self._store

    async def prefetch(
        self,
        user_id: str,
        playlist_id: str,
        video_ids: Sequence[str],
    ) -> dict[str, float]:
        """Bulk-read offsets for *video_ids*; ``{}`` on failure."""
        if not video_ids:
            return {}
        try:
            raw = await self._store.get_checkpoints_for_playlist(
                user_id, playlist_id, list(video_ids)
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Checkpoint prefetch failed for %s/%s: %s", user_id, playlist_id, exc
            )
            return {}

        offsets: dict[str, float] = {}
        for video_id, value in raw.items():
            offset = normalize_offset(value)
            if offset is not None:
                offsets[video_id] = offset
        return offsets

    async def load(self, user_id: str, playlist_id: str, video_id: str) -> float | None:
        """Read one offset; ``None`` when absent or on failure."""
        try:
            value = await self._store.get_checkpoint(user_id, playlist_id, video_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Checkpoint read failed for %s/%s/%s: %s",
                user_id,
                playlist_id,
                video_id,
                exc,
            )
            return None
        return normalize_offset(value) if value is not None else None

    async def save(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
        offset_seconds: object,
    ) -> bool:
        """Upsert an offset.  Returns ``False`` if skipped or failed."""
        offset = normalize_offset(offset_seconds)
        if offset is None:
            logger.debug("Skipping save of non-numeric offset %r", offset_seconds)
            return False
        try:
            return bool(
                await self._store.save_checkpoint(user_id, playlist_id, video_id, offset)
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Checkpoint save failed for %s/%s/%s: %s",
                user_id,
                playlist_id,
                video_id,
                exc,
            )
            return False
