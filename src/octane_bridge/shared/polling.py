"""
Polling primitives
Cooperative, fixed-interval loops: the only suspension points are the sleeps between ticks
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .exceptions import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Tick(Enum):
    """Outcome of one poll iteration"""
    DONE = "done"
    BUSY = "busy"
    IDLE = "idle"


async def poll(
    tick: Callable[[], Awaitable[Tick]],
    interval: float,
    max_idle_tries: Optional[int] = None,
    confirm_done: Optional[Callable[[], Awaitable[bool]]] = None
) -> None:
    """
    Run tick until it reports DONE

    BUSY resets the idle counter and ticks again right away. IDLE sleeps for
    interval. Once max_idle_tries consecutive idle ticks are reached,
    confirm_done decides: True stops the loop, False steps the counter back
    and keeps waiting. Errors raised by tick or confirm_done propagate.
    """
    idle_tries = 1

    while True:
        outcome = await tick()

        if outcome is Tick.DONE:
            return

        if outcome is Tick.BUSY:
            idle_tries = 1
            continue

        if max_idle_tries is not None and idle_tries >= max_idle_tries:
            if confirm_done is None or await confirm_done():
                return
            idle_tries -= 1
        else:
            idle_tries += 1

        await asyncio.sleep(interval)


async def retry_until_found(
    fetch: Callable[[], Awaitable[T]],
    max_tries: int,
    interval: float,
    retry_on: Tuple[Type[BaseException], ...] = (NotFoundError,)
) -> T:
    """Call fetch until it stops raising one of retry_on, at most max_tries times"""
    attempt = 1
    while True:
        try:
            return await fetch()
        except retry_on as e:
            if attempt >= max_tries:
                raise
            logger.debug(f"Attempt {attempt}/{max_tries} failed: {e}. Retrying...")
            attempt += 1
            await asyncio.sleep(interval)
