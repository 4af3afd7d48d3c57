"""Memoized asynchronous initializer for the player library.

The embedded player library must be loaded at most once per page.  A
:class:`SharedInitializer` wraps the loader coroutine behind a single
shared future: the first caller starts the load, every later or
concurrent caller awaits the same completion.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SharedInitializer(Generic[T]):
    """Run *load* once and hand its result to every awaiting caller.

    A failed load is not memoized: the error reaches every caller that
    was waiting on it, and the next :meth:`get` starts a fresh attempt.
    """

    def __init__(self, load: Callable[[], Awaitable[T]], *, name: str = "player-api") -> None:
        self._load = load
        self._name = name
        self._future: asyncio.Future[T] | None = None
        self.load_count: int = 0

    @property
    def loaded(self) -> bool:
        future = self._future
        return (
            future is not None
            and future.done()
            and not future.cancelled()
            and future.exception() is None
        )

    async def get(self) -> T:
        """Return the loaded value, starting the load if nobody has yet."""
        if self._future is None:
            self._future = asyncio.ensure_future(self._run())
        return await asyncio.shield(self._future)

    async def _run(self) -> T:
        self.load_count += 1
        logger.debug("Loading %s (attempt %d)", self._name, self.load_count)
        try:
            return await self._load()
        except BaseException:
            self._future = None
            raise
