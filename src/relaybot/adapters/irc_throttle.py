"""Per-network flood control for outbound IRC lines."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class TokenBucket:
    """Lets `capacity` lines out in a burst, then `rate` lines per second.

    `clock` and `sleep` default to the real monotonic clock and asyncio.sleep.
    """

    def __init__(
        self,
        capacity: int,
        rate: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.rate = float(rate if rate is not None else capacity)
        self._clock = clock
        self._sleep = sleep
        self._level = float(capacity)
        self._stamp = clock()

    @property
    def available(self) -> float:
        self._top_up()
        return self._level

    def try_take(self) -> bool:
        self._top_up()
        if self._level < 1:
            return False
        self._level -= 1
        return True

    def delay(self) -> float:
        """Seconds until the next line may go out."""
        missing = 1 - self.available
        return max(missing, 0.0) / self.rate

    async def take(self) -> float:
        """Wait for a free slot and consume it. Returns the time spent waiting."""
        waited = 0.0
        while not self.try_take():
            pause = self.delay()
            await self._sleep(pause)
            waited += pause
        return waited

    def _top_up(self) -> None:
        now = self._clock()
        self._level = min(self.capacity, self._level + (now - self._stamp) * self.rate)
        self._stamp = now
