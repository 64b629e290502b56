"""Delay helper that returns early once a stop event is set."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

SleepCallable = Callable[[float], Awaitable[None]]


async def sleep_or_stop(sleep: SleepCallable, delay: float, stop_event: asyncio.Event) -> bool:
    """Wait ``delay`` seconds via ``sleep``; return True when stopped first."""

    if stop_event.is_set():
        return True
    sleep_task = asyncio.ensure_future(sleep(delay))
    stop_task = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({sleep_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleep_task, stop_task):
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
    return stop_event.is_set()
