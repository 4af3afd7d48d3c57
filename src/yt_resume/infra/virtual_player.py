"""Headless player backend driven by a clock.

:class:`VirtualPlayerFactory` satisfies
:class:`~yt_resume.core.protocols.PlayerFactory` and hands out
:class:`VirtualPlayer` instances that behave like the embedded IFrame
player where it matters to a session:

* the ready event fires asynchronously after creation;
* the duration reads as ``0`` for a few polls after ready;
* the playback position advances with the clock only while playing;
* a mount point holds at most one live player.

The CLI ``play`` command runs sessions against it, and tests drive it
with a :class:`ManualClock`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Protocol

from yt_resume.core.models import PlayerState
from yt_resume.core.protocols import PlayerListener
from yt_resume.exceptions import PlayerError, PlayerNotReadyError

logger = logging.getLogger(__name__)

DEFAULT_DURATION: float = 600.0


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------

class Clock(Protocol):
    def now(self) -> float:
        ...  # pragma: no cover


class MonotonicClock:
    """Wall-clock time source."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class VirtualPlayer:
    """One headless player instance bound to a mount point."""

    def __init__(
        self,
        factory: VirtualPlayerFactory,
        mount_id: str,
        video_ids: Sequence[str],
        *,
        start_seconds: float,
        listener: PlayerListener,
        clock: Clock,
        duration: float,
        duration_delay_polls: int,
    ) -> None:
        if not video_ids:
            raise PlayerError("A player needs at least one video.")
        self._factory = factory
        self.mount_id = mount_id
        self.video_ids: tuple[str, ...] = tuple(video_ids)
        self._listener = listener
        self._clock = clock
        self._media_duration = float(duration)
        self._pending_duration_polls = duration_delay_polls
        self._position = max(float(start_seconds), 0.0)
        self._anchor = clock.now()
        self.state: PlayerState = PlayerState.UNSTARTED
        self.ready = False
        self.destroyed = False
        self.seeks: list[float] = []

    # ------------------------------------------------------------------
    # Player protocol
    # ------------------------------------------------------------------

    @property
    def video_id(self) -> str | None:
        return self.video_ids[0] if not self.destroyed else None

    def get_duration(self) -> float:
        self._check_live()
        if not self.ready:
            raise PlayerNotReadyError("Player is not ready.")
        if self._pending_duration_polls > 0:
            self._pending_duration_polls -= 1
            return 0.0
        return self._duration()

    def get_current_time(self) -> float:
        self._check_live()
        if not self.ready:
            raise PlayerNotReadyError("Player is not ready.")
        return self._current_position()

    def seek_to(self, seconds: float) -> None:
        self._check_live()
        self._position = min(max(float(seconds), 0.0), self._duration())
        self._anchor = self._clock.now()
        self.seeks.append(self._position)

    def play(self) -> None:
        self._check_live()
        if self.state is PlayerState.PLAYING:
            return
        self._anchor = self._clock.now()
        self._set_state(PlayerState.PLAYING)

    def pause(self) -> None:
        self._check_live()
        if self.state is PlayerState.PAUSED:
            return
        self._position = self._current_position()
        self._anchor = self._clock.now()
        self._set_state(PlayerState.PAUSED)

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        self._factory._release(self)
        logger.debug("Player at %s destroyed", self.mount_id)

    # ------------------------------------------------------------------
    # Simulation hooks
    # ------------------------------------------------------------------

    def emit_ready(self) -> None:
        """Deliver the ready event (scheduled by the factory)."""
        if self.destroyed or self.ready:
            return
        self.ready = True
        self._listener.on_ready()

    def finish(self) -> None:
        """Jump to the end of the current video and emit ``ENDED``."""
        self._check_live()
        self._position = self._duration()
        self._anchor = self._clock.now()
        self._set_state(PlayerState.ENDED)

    def sync(self) -> None:
        """Emit ``ENDED`` if playback has run past the duration."""
        if self.destroyed or self.state is not PlayerState.PLAYING:
            return
        if self._current_position() >= self._duration():
            self.finish()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_live(self) -> None:
        if self.destroyed:
            raise PlayerError(f"Player at {self.mount_id} has been destroyed.")

    def _duration(self) -> float:
        return self._media_duration

    def _current_position(self) -> float:
        position = self._position
        if self.state is PlayerState.PLAYING:
            position += self._clock.now() - self._anchor
        return min(position, self._duration())

    def _set_state(self, state: PlayerState) -> None:
        self.state = state
        self._listener.on_state_change(state)


# ---------------------------------------------------------------------------
# Factory ("the loaded player library")
# ---------------------------------------------------------------------------

class VirtualPlayerFactory:
    """Creates :class:`VirtualPlayer` s and tracks mount-point ownership.

    Parameters
    ----------
    clock:
        Time source for playback positions (default: monotonic).
    durations:
        Per-video durations in seconds; others use *default_duration*.
    duration_delay_polls:
        How many duration reads return ``0`` after the ready event.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        durations: Mapping[str, float] | None = None,
        default_duration: float = DEFAULT_DURATION,
        duration_delay_polls: int = 2,
    ) -> None:
        self.clock: Clock = clock if clock is not None else MonotonicClock()
        self._durations: dict[str, float] = dict(durations or {})
        self._default_duration = default_duration
        self._duration_delay_polls = duration_delay_polls
        self._mounts: dict[str, VirtualPlayer] = {}
        self.created: list[VirtualPlayer] = []

    def player_at(self, mount_id: str) -> VirtualPlayer | None:
        return self._mounts.get(mount_id)

    @property
    def live_players(self) -> list[VirtualPlayer]:
        return list(self._mounts.values())

    def create(
        self,
        mount_id: str,
        video_ids: Sequence[str],
        *,
        start_seconds: float,
        listener: PlayerListener,
    ) -> VirtualPlayer:
        if mount_id in self._mounts:
            raise PlayerError(
                f"Mount point {mount_id!r} already hosts a live player.",
                hint="Destroy the previous player before creating a new one.",
            )
        if not video_ids:
            raise PlayerError("A player needs at least one video.")
        player = VirtualPlayer(
            self,
            mount_id,
            video_ids,
            start_seconds=start_seconds,
            listener=listener,
            clock=self.clock,
            duration=self._durations.get(video_ids[0], self._default_duration),
            duration_delay_polls=self._duration_delay_polls,
        )
        self._mounts[mount_id] = player
        self.created.append(player)
        asyncio.get_running_loop().call_soon(player.emit_ready)
        return player

    def tick(self) -> None:
        """Advance end-of-media detection for every live player."""
        for player in list(self._mounts.values()):
            player.sync()

    def _release(self, player: VirtualPlayer) -> None:
        if self._mounts.get(player.mount_id) is player:
            del self._mounts[player.mount_id]


async def load_virtual_player_api(**kwargs: object) -> VirtualPlayerFactory:
    """Loader coroutine for :class:`~yt_resume.core.loader.SharedInitializer`."""
    logger.debug("Initialising headless player library")
    return VirtualPlayerFactory(**kwargs)  # type: ignore[arg-type]
