"""Playback session controller.

A :class:`PlaybackSession` owns one embedded player bound to one
resolved playlist and one mount point.  It:

* waits for the shared player library (loaded once per page);
* bulk-prefetches the user's checkpoints for the whole playlist;
* builds the player on a *rotated* play order that starts at the
  requested video;
* after the ready event, polls until the duration is known, then seeks
  to the saved offset and leaves the player paused;
* checkpoints the position on a fixed timer, and immediately on pause
  and end;
* on end, rebuilds on the next video of the *original* order.

State machine::

    UNINITIALIZED -> LOADING_API -> AWAITING_DURATION -> READY
    READY/PLAYING <-> PAUSED -> ENDED ;  any -> TORN_DOWN

Every save is parameterised by the video id captured when it was
triggered, so a save racing with a video switch still lands on the
right checkpoint.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Coroutine, Mapping, Sequence
from typing import Any, TypeVar

from yt_resume.core.loader import SharedInitializer
from yt_resume.core.models import PlayerState, PlaylistResolution
from yt_resume.core.polling import SleepFn, retry_until
from yt_resume.core.progress import ProgressRecorder, normalize_offset
from yt_resume.core.protocols import Player, PlayerFactory
from yt_resume.core.timer import PeriodicTimer
from yt_resume.exceptions import (
    EmptyPlaylistError,
    InvalidVideoError,
    PlayerError,
    SessionStateError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CHECKPOINT_INTERVAL: float = 5.0
DEFAULT_DURATION_POLL_INTERVAL: float = 0.25


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING_API = "loading-api"
    AWAITING_DURATION = "awaiting-duration"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    TORN_DOWN = "torn-down"


def rotate_play_order(items: Sequence[T], start_index: int) -> list[T]:
    """Return *items* rotated so ``items[start_index]`` comes first.

    ``[v1..vn]`` with start ``k`` becomes ``[vk, ..., vn, v1, ..., vk-1]``.
    An out-of-range index starts from the first item.
    """
    if not 0 <= start_index < len(items):
        start_index = 0
    return list(items[start_index:]) + list(items[:start_index])


class _Listener:
    """Routes player callbacks to the session, tagged with a build number.

    Callbacks from a player that has since been replaced are dropped.
    """

    def __init__(self, session: PlaybackSession, generation: int) -> None:
        self._session = session
        self._generation = generation

    def on_ready(self) -> None:
        self._session._handle_ready(self._generation)

    def on_state_change(self, state: PlayerState) -> None:
        self._session._handle_state_change(self._generation, state)


class PlaybackSession:
    """One live player bound to one playlist, with resumable progress.

    Parameters
    ----------
    playlist:
        Resolved playlist.  Must contain at least one video.
    start_video_id:
        Video to open on.  Unknown or ``None`` falls back to the first.
    mount_id:
        Unique on-screen slot the player is created in.
    user_id:
        Owner of the checkpoints read and written.
    recorder:
        Fail-open checkpoint persistence.
    player_api:
        Shared initializer yielding the loaded :class:`PlayerFactory`.
    checkpoint_interval:
        Seconds between periodic saves.
    duration_poll_interval:
        Seconds between duration probes after the ready event.
    sleep:
        Awaitable delay used by the timer and the poller.
    on_change:
        Optional callback invoked after every state transition.
    prefetched_offsets:
        Checkpoints the caller already read for this playlist.  When
        given, :meth:`start` skips its own bulk read.

    Raises
    ------
    EmptyPlaylistError
        If *playlist* has no videos.
    """

    def __init__(
        self,
        playlist: PlaylistResolution,
        *,
        start_video_id: str | None,
        mount_id: str,
        user_id: str,
        recorder: ProgressRecorder,
        player_api: SharedInitializer[PlayerFactory],
        checkpoint_interval: float = DEFAULT_CHECKPOINT_INTERVAL,
        duration_poll_interval: float = DEFAULT_DURATION_POLL_INTERVAL,
        sleep: SleepFn = asyncio.sleep,
        on_change: Callable[[PlaybackSession], None] | None = None,
        prefetched_offsets: Mapping[str, float] | None = None,
    ) -> None:
        if not playlist.videos:
            raise EmptyPlaylistError(
                f"Playlist {playlist.playlist_id} has no videos available.",
                hint="The playlist may be private, empty, or could not be scraped.",
            )

        self._playlist = playlist
        self._mount_id = mount_id
        self._user_id = user_id
        self._recorder = recorder
        self._player_api = player_api
        self._checkpoint_interval = checkpoint_interval
        self._poll_interval = duration_poll_interval
        self._sleep = sleep
        self._on_change = on_change

        start_index = playlist.index_of(start_video_id) if start_video_id else None
        self._current: str = playlist.videos[start_index or 0].video_id

        self._state = SessionState.UNINITIALIZED
        self._factory: PlayerFactory | None = None
        self._player: Player | None = None
        self._timer: PeriodicTimer | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()
        self._offsets: dict[str, float] = {}
        self._seed_offset: float = 0.0
        self._generation = 0
        self._settle_generation: int | None = None
        self._prefetched: dict[str, float] | None = (
            dict(prefetched_offsets) if prefetched_offsets is not None else None
        )
        self._alive = True

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_video_id(self) -> str:
        return self._current

    @property
    def playlist(self) -> PlaylistResolution:
        return self._playlist

    @property
    def mount_id(self) -> str:
        return self._mount_id

    @property
    def player(self) -> Player | None:
        return self._player

    @property
    def offsets(self) -> dict[str, float]:
        """Known offsets per video (prefetched, then written through)."""
        return dict(self._offsets)

    @property
    def seed_offset(self) -> float:
        """Offset the current player was seeded with."""
        return self._seed_offset

    @property
    def play_order(self) -> list[str]:
        """Video ids in the order handed to the current player."""
        index = self._playlist.index_of(self._current) or 0
        return rotate_play_order(self._playlist.video_ids, index)

    @property
    def is_alive(self) -> bool:
        return self._alive

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load the player API, prefetch checkpoints and create the player.

        Raises
        ------
        SessionStateError
            If the session was already started or torn down.
        """
        if self._state is not SessionState.UNINITIALIZED:
            raise SessionStateError(f"Cannot start a session in state {self._state.value}.")

        self._set_state(SessionState.LOADING_API)
        factory = await self._player_api.get()
        if not self._alive:
            return
        self._factory = factory

        if self._prefetched is not None:
            offsets = self._prefetched
        else:
            offsets = await self._recorder.prefetch(
                self._user_id, self._playlist.playlist_id, self._playlist.video_ids
            )
            if not self._alive:
                return
        self._offsets.update(offsets)
        logger.debug(
            "Session %s prefetched %d checkpoints for %s",
            self._mount_id,
            len(offsets),
            self._playlist.playlist_id,
        )

        self._build_player()

    def select_video(self, video_id: str) -> None:
        """Switch to *video_id*, rebuilding the player there.

        The position of the outgoing video is saved first.

        Raises
        ------
        InvalidVideoError
            If *video_id* is not in the playlist.
        SessionStateError
            If the session has been torn down.
        """
        if not self._alive:
            raise SessionStateError("Session has been torn down.")
        if self._playlist.index_of(video_id) is None:
            raise InvalidVideoError(
                f"Video {video_id} is not part of playlist {self._playlist.playlist_id}."
            )
        if self._factory is None:
            self._current = video_id
            return
        if video_id == self._current:
            return
        self._save_now()
        self._rebuild(video_id)

    def teardown(self) -> None:
        """Cancel the timer, release the player and its mount point.

        Synchronous and idempotent.  Saves already in flight finish on
        their own; they hold no reference to the player.
        """
        if not self._alive:
            return
        self._alive = False
        self._stop_player()
        self._set_state(SessionState.TORN_DOWN)
        logger.debug("Session %s torn down", self._mount_id)

    async def flush(self) -> None:
        """Wait for every in-flight checkpoint save to complete."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        self.teardown()
        await self.flush()

    async def __aenter__(self) -> PlaybackSession:
        await self.start()
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Player construction
    # ------------------------------------------------------------------

    def _build_player(self) -> None:
        assert self._factory is not None
        self._generation += 1
        generation = self._generation

        self._seed_offset = self._offsets.get(self._current, 0.0)
        order = self.play_order
        self._player = self._factory.create(
            self._mount_id,
            order,
            start_seconds=self._seed_offset,
            listener=_Listener(self, generation),
        )
        self._timer = PeriodicTimer(
            self._checkpoint_interval,
            self._periodic_save,
            sleep=self._sleep,
            name=f"checkpoint-{self._mount_id}",
        )
        self._timer.start()
        self._set_state(SessionState.AWAITING_DURATION)
        logger.debug(
            "Session %s built player for %s (seed %.1fs, order %s)",
            self._mount_id,
            self._current,
            self._seed_offset,
            order,
        )

    def _stop_player(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        player, self._player = self._player, None
        if player is not None:
            try:
                player.destroy()
            except PlayerError as exc:
                logger.debug("Ignoring player destroy failure: %s", exc)

    def _rebuild(self, video_id: str) -> None:
        self._stop_player()
        self._current = video_id
        self._build_player()

    def _is_current(self, generation: int) -> bool:
        return self._alive and generation == self._generation and self._player is not None

    # ------------------------------------------------------------------
    # Player events
    # ------------------------------------------------------------------

    def _handle_ready(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._poll_task = asyncio.get_running_loop().create_task(
            self._settle_after_ready(generation)
        )

    async def _settle_after_ready(self, generation: int) -> None:
        player = self._player
        if player is None:
            return
        duration = await retry_until(
            player.get_duration,
            lambda value: isinstance(value, (int, float)) and value > 0,
            interval=self._poll_interval,
            sleep=self._sleep,
            should_continue=lambda: self._is_current(generation),
        )
        if duration is None or not self._is_current(generation):
            return

        self._settle_generation = generation
        try:
            if self._seed_offset > 0:
                player.seek_to(self._seed_offset)
            player.pause()
        except PlayerError as exc:
            self._settle_generation = None
            logger.debug("Resume seek failed, starting from 0: %s", exc)
        self._set_state(SessionState.READY)

    def _handle_state_change(self, generation: int, state: PlayerState) -> None:
        if not self._is_current(generation):
            return
        if state is PlayerState.PAUSED and self._settle_generation == generation:
            # Our own settle pause, delivered now or later.
            self._settle_generation = None
            return
        if state is not PlayerState.PAUSED:
            self._settle_generation = None
        if state is PlayerState.PLAYING:
            self._set_state(SessionState.PLAYING)
        elif state is PlayerState.PAUSED:
            self._set_state(SessionState.PAUSED)
            self._save_now()
        elif state is PlayerState.ENDED:
            ended_video = self._current
            self._set_state(SessionState.ENDED)
            self._save_now()
            self._advance_after(ended_video)

    def _advance_after(self, ended_video: str) -> None:
        videos = self._playlist.videos
        index = self._playlist.index_of(ended_video)
        if len(videos) <= 1 or index is None or index >= len(videos) - 1:
            return
        next_video = videos[index + 1].video_id
        logger.debug("Video %s ended, advancing to %s", ended_video, next_video)
        self._rebuild(next_video)

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def _read_position(self) -> float | None:
        player = self._player
        if player is None:
            return None
        try:
            return normalize_offset(player.get_current_time())
        except PlayerError:
            return None

    def _save_now(self) -> None:
        """Out-of-band save for the current video, captured right now."""
        video_id = self._current
        offset = self._read_position()
        if offset is None:
            return
        self._offsets[video_id] = offset
        self._spawn(
            self._recorder.save(self._user_id, self._playlist.playlist_id, video_id, offset)
        )

    async def _periodic_save(self) -> None:
        # The write runs outside the timer task so teardown cannot cancel it.
        if self._alive:
            self._save_now()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug("Session %s: %s -> %s", self._mount_id, self._state.value, state.value)
        self._state = state
        if self._on_change is not None:
            self._on_change(self)
