"""
Ads Date Pull – one-minute window request counter for Airtable writes.

One instance per pull run, shared by the four concurrent writers. The wait is single-shot:
once the ceiling is hit, acquire() sleeps until the window resets and proceeds without
re-checking, so bursts from concurrent writers can still exceed the ceiling.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self.requests = 0
        self.reset_at = clock() + window_seconds

    async def acquire(self) -> None:
        """Wait until the window has room. Call before and after each batch."""
        now = self._clock()
        if now >= self.reset_at:
            self.requests = 0
            self.reset_at = now + self.window_seconds
        if self.requests >= self.max_requests:
            wait = max(0.0, self.reset_at - now)
            logger.info("Rate limit reached (%s requests); waiting %.1fs", self.requests, wait)
            await self._sleep(wait)

    def record(self) -> None:
        """Count one issued request against the current window."""
        self.requests += 1
