"""Cancellable periodic timer on the running event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from yt_resume.core.polling import SleepFn

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """Invoke an async *callback* every *interval* seconds until cancelled.

    :meth:`cancel` is synchronous: once it returns, no further callback
    starts.  Every tick re-checks the liveness flag after sleeping.
    Callback errors are logged and the timer keeps running.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        *,
        sleep: SleepFn = asyncio.sleep,
        name: str = "periodic-timer",
    ) -> None:
        self.interval = interval
        self._callback = callback
        self._sleep = sleep
        self._name = name
        self._alive = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._alive

    def start(self) -> None:
        if self._alive:
            return
        self._alive = True
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    def cancel(self) -> None:
        self._alive = False
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while self._alive:
            await self._sleep(self.interval)
            if not self._alive:
                break
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.warning("%s callback failed", self._name, exc_info=True)
