"""Minimum spacing between outbound calls to the CMS dataset API"""

import asyncio
import time
from typing import Awaitable, Callable, Optional
import structlog

from rate_reference.config import settings

logger = structlog.get_logger()


class PolitenessLimiter:
    """
    Hands out dispatch slots at least ``min_interval`` seconds apart.

    Callers await ``acquire()`` immediately before each outbound call.
    Waiters are served one at a time, so a burst of N acquires completes
    over roughly (N - 1) * min_interval seconds.
    """

    def __init__(
        self,
        min_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = settings.politeness_delay_seconds if min_interval is None else min_interval
        self.clock = clock
        self.sleep = sleep
        self._last_dispatch: Optional[float] = None
        self._lock = asyncio.Lock()
        self.total_wait = 0.0

    async def acquire(self) -> float:
        """Wait for the next slot; returns the seconds spent waiting"""
        if self.min_interval <= 0:
            return 0.0

        async with self._lock:
            waited = 0.0
            if self._last_dispatch is not None:
                remaining = self.min_interval - (self.clock() - self._last_dispatch)
                if remaining > 0:
                    logger.debug("Spacing outbound call", delay_seconds=round(remaining, 3))
                    await self.sleep(remaining)
                    waited = remaining

            self._last_dispatch = self.clock()
            self.total_wait += waited
            return waited

    def reset(self):
        self._last_dispatch = None
