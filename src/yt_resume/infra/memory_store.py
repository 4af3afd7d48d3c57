"""In-memory :class:`~yt_resume.core.protocols.ProgressStore`.

Keeps one :class:`~yt_resume.core.models.PlaybackCheckpoint` per user
and composite ``<playlist>_<video>`` key, mirroring the document layout
of the hosted store.  Used for tests and throwaway CLI sessions.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from yt_resume.core.models import PlaybackCheckpoint, checkpoint_key


class InMemoryProgressStore:
    """Dict-backed checkpoint store.  Last write wins."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, PlaybackCheckpoint]] = {}
        self.save_log: list[PlaybackCheckpoint] = []
        """Every accepted write, in order (inspection aid)."""

    def __len__(self) -> int:
        return sum(len(docs) for docs in self._docs.values())

    def checkpoints(self, user_id: str) -> list[PlaybackCheckpoint]:
        return list(self._docs.get(user_id, {}).values())

    async def get_checkpoint(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
    ) -> float | None:
        doc = self._docs.get(user_id, {}).get(checkpoint_key(playlist_id, video_id))
        return doc.offset_seconds if doc is not None else None

    async def get_checkpoints_for_playlist(
        self,
        user_id: str,
        playlist_id: str,
        video_ids: Sequence[str],
    ) -> Mapping[str, float]:
        docs = self._docs.get(user_id, {})
        found: dict[str, float] = {}
        for video_id in video_ids:
            doc = docs.get(checkpoint_key(playlist_id, video_id))
            if doc is not None:
                found[video_id] = doc.offset_seconds
        return found

    async def save_checkpoint(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
        offset_seconds: float,
    ) -> bool:
        checkpoint = PlaybackCheckpoint(
            user_id=user_id,
            playlist_id=playlist_id,
            video_id=video_id,
            offset_seconds=float(offset_seconds),
        )
        self._docs.setdefault(user_id, {})[checkpoint.doc_key] = checkpoint
        self.save_log.append(checkpoint)
        return True
