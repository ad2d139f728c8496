"""Minimum spacing between calls to one external endpoint."""

import asyncio
import time
from collections.abc import Awaitable, Callable


class RequestThrottle:
    """Blocks callers so consecutive windows are at least ``min_interval`` apart.

    One caller holds the lock while it waits out the remaining interval, so
    concurrent callers are admitted one per window.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    async def await_window(self) -> None:
        async with self._lock:
            if self._last_call is not None:
                wait = self._last_call + self.min_interval - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            self._last_call = self._clock()
