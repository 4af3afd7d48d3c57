"""Retry-until-predicate combinator.

Used to wait for player state that is not available synchronously,
such as the media duration right after the ready event.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from yt_resume.exceptions import PlayerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


async def retry_until(
    probe: Callable[[], T],
    predicate: Callable[[T], bool],
    *,
    interval: float,
    max_attempts: int | None = None,
    retry_on: tuple[type[BaseException], ...] = (PlayerError,),
    sleep: SleepFn = asyncio.sleep,
    should_continue: Callable[[], bool] = lambda: True,
) -> T | None:
    """Call *probe* every *interval* seconds until *predicate* accepts it.

    Exceptions listed in *retry_on* count as "not ready yet".  Returns
    the accepted value, or ``None`` when *max_attempts* is exhausted or
    *should_continue* turns false.  ``max_attempts=None`` polls forever.
    """
    attempt = 0
    while should_continue():
        attempt += 1
        try:
            value = probe()
        except retry_on as exc:
            logger.debug("Probe not ready (attempt %d): %s", attempt, exc)
        else:
            if predicate(value):
                return value
        if max_attempts is not None and attempt >= max_attempts:
            return None
        await sleep(interval)
    return None
