"""Client-side throttle keeping us under the Resi Studio request quota."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, List

logger = logging.getLogger(__name__)

REQUEST_LIMIT = 10
TIME_WINDOW = 60.0


class RateLimiter:
    """At most ``limit`` requests in any trailing ``window`` seconds.

    Not a token bucket: callers wait and re-check until the oldest request
    ages out of the window. Admission is FIFO through an asyncio lock.
    """

    def __init__(
        self,
        limit: int = REQUEST_LIMIT,
        window: float = TIME_WINDOW,
        recheck_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.limit = limit
        self.window = window
        self.recheck_interval = recheck_interval
        self._clock = clock
        self._sleep = sleep
        self._log: List[float] = []
        self._lock = asyncio.Lock()

    @property
    def request_log(self) -> List[float]:
        return list(self._log)

    def _prune(self, now: float) -> None:
        self._log = [stamp for stamp in self._log if now - stamp < self.window]

    async def admit_request(self) -> None:
        while True:
            self._prune(self._clock())
            if len(self._log) < self.limit:
                logger.debug("Request allowed: %d requests in the last %.0f seconds", len(self._log), self.window)
                return
            logger.debug("Request limit reached: %d requests in the last %.0f seconds", len(self._log), self.window)
            await self._sleep(self.recheck_interval)

    def record_request(self) -> None:
        self._log.append(self._clock())

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Bracket one outbound call with admit-then-record."""
        async with self._lock:
            await self.admit_request()
            try:
                yield
            finally:
                self.record_request()
