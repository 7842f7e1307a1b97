"""Fixed-interval async rate limiter."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class IntervalRateLimiter:
    """Allows at most one dispatch per ``interval`` seconds.

    Callers queue on an ``asyncio.Lock`` that stays held for the whole
    request, so a second caller waits both for the in-flight request and for
    the interval to elapse since the previous dispatch.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last: float | None = None

    @property
    def last_dispatch(self) -> float | None:
        return self._last

    def time_until_ready(self) -> float:
        if self._last is None:
            return 0.0
        elapsed = self._clock() - self._last
        return max(0.0, self.interval - elapsed)

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._lock:
            wait = self.time_until_ready()
            if wait > 0:
                logger.debug("Rate limiter sleeping %.2fs", wait)
                await self._sleep(wait)
            self._last = self._clock()
            yield
