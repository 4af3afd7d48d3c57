"""SQLite backed :class:`~yt_resume.core.protocols.ProgressStore`.

One row per (user, ``<playlist>_<video>``) document key.  Writes are
upserts (``ON CONFLICT ... DO UPDATE``), so saving the same triple
twice leaves a single row holding the latest offset.

Blocking ``sqlite3`` calls run in a worker thread; every
``sqlite3.Error`` is re-raised as
:class:`~yt_resume.exceptions.ProgressStoreError`.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path

from yt_resume.core.models import PlaybackCheckpoint, checkpoint_key
from yt_resume.exceptions import ProgressStoreError

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS checkpoints (
        user_id TEXT NOT NULL,
        doc_key TEXT NOT NULL,
        playlist_id TEXT NOT NULL,
        video_id TEXT NOT NULL,
        offset_seconds REAL NOT NULL,
        updated_at TIMESTAMP NOT NULL,
        PRIMARY KEY (user_id, doc_key)
    )
"""
_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_checkpoints_user_playlist "
    "ON checkpoints (user_id, playlist_id)"
)


class SqliteProgressStore:
    """Checkpoint store persisted in a local SQLite file.

    Parameters
    ----------
    path:
        Database file.  Parent directories are created on demand;
        ``":memory:"`` keeps everything in RAM for the store's lifetime.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            target = self._path
            try:
                if target != ":memory:":
                    db_file = Path(target).expanduser()
                    db_file.parent.mkdir(parents=True, exist_ok=True)
                    target = str(db_file)
                conn = sqlite3.connect(target, check_same_thread=False)
                conn.execute(_SCHEMA)
                conn.execute(_INDEX)
                conn.commit()
            except (sqlite3.Error, OSError) as exc:
                raise ProgressStoreError(
                    f"Cannot open progress database {self._path}: {exc}",
                    hint="Set YT_RESUME_DATABASE_PATH to a writable location.",
                ) from exc
            self._conn = conn
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------

    def _get_one(self, user_id: str, playlist_id: str, video_id: str) -> float | None:
        with self._lock:
            try:
                cur = self._connect().execute(
                    "SELECT offset_seconds FROM checkpoints WHERE user_id=? AND doc_key=?",
                    (user_id, checkpoint_key(playlist_id, video_id)),
                )
                row = cur.fetchone()
            except sqlite3.Error as exc:
                raise ProgressStoreError(f"Checkpoint read failed: {exc}") from exc
        return float(row[0]) if row is not None else None

    def _get_many(
        self,
        user_id: str,
        playlist_id: str,
        video_ids: Sequence[str],
    ) -> dict[str, float]:
        wanted = set(video_ids)
        with self._lock:
            try:
                cur = self._connect().execute(
                    "SELECT video_id, offset_seconds FROM checkpoints "
                    "WHERE user_id=? AND playlist_id=?",
                    (user_id, playlist_id),
                )
                rows = cur.fetchall()
            except sqlite3.Error as exc:
                raise ProgressStoreError(f"Checkpoint bulk read failed: {exc}") from exc
        return {video_id: float(offset) for video_id, offset in rows if video_id in wanted}

    def _upsert(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
        offset_seconds: float,
    ) -> bool:
        timestamp = datetime.now(timezone.utc).isoformat()
        with self._lock:
            try:
                conn = self._connect()
                conn.execute(
                    "INSERT INTO checkpoints "
                    "(user_id, doc_key, playlist_id, video_id, offset_seconds, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(user_id, doc_key) DO UPDATE SET "
                    "offset_seconds=excluded.offset_seconds, updated_at=excluded.updated_at",
                    (
                        user_id,
                        checkpoint_key(playlist_id, video_id),
                        playlist_id,
                        video_id,
                        float(offset_seconds),
                        timestamp,
                    ),
                )
                conn.commit()
            except sqlite3.Error as exc:
                raise ProgressStoreError(f"Checkpoint save failed: {exc}") from exc
        return True

    def list_checkpoints(self, user_id: str, playlist_id: str) -> list[PlaybackCheckpoint]:
        """Return every stored checkpoint of *user_id* in *playlist_id*."""
        with self._lock:
            try:
                cur = self._connect().execute(
                    "SELECT video_id, offset_seconds, updated_at FROM checkpoints "
                    "WHERE user_id=? AND playlist_id=? ORDER BY updated_at",
                    (user_id, playlist_id),
                )
                rows = cur.fetchall()
            except sqlite3.Error as exc:
                raise ProgressStoreError(f"Checkpoint listing failed: {exc}") from exc
        return [
            PlaybackCheckpoint(
                user_id=user_id,
                playlist_id=playlist_id,
                video_id=video_id,
                offset_seconds=float(offset),
                updated_at=datetime.fromisoformat(updated_at),
            )
            for video_id, offset, updated_at in rows
        ]

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    async def get_checkpoint(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
    ) -> float | None:
        return await asyncio.to_thread(self._get_one, user_id, playlist_id, video_id)

    async def get_checkpoints_for_playlist(
        self,
        user_id: str,
        playlist_id: str,
        video_ids: Sequence[str],
    ) -> Mapping[str, float]:
        return await asyncio.to_thread(self._get_many, user_id, playlist_id, list(video_ids))

    async def save_checkpoint(
        self,
        user_id: str,
        playlist_id: str,
        video_id: str,
        offset_seconds: float,
    ) -> bool:
        return await asyncio.to_thread(
            self._upsert, user_id, playlist_id, video_id, offset_seconds
        )
