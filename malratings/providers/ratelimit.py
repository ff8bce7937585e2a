"""Minimum-interval rate limiting for third-party APIs."""

import asyncio
import threading
import time
from collections.abc import Callable

from ..core.logging import get_logger

logger = get_logger("ratelimit")


class RateLimiter:
    """Spaces request starts at least ``min_interval`` seconds apart.

    Each caller reserves the next free slot under a lock and then sleeps
    until that slot outside the lock, so concurrent callers queue up one
    interval apart instead of bursting together.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._next_slot: float | None = None

    def reserve(self) -> float:
        """Claim the next slot and return how long to wait for it."""
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
            return slot - now

    async def wait(self) -> None:
        """Wait until the caller may issue its request."""
        delay = self.reserve()
        if delay > 0:
            logger.debug("Rate limiting", delay_ms=round(delay * 1000))
            await asyncio.sleep(delay)
