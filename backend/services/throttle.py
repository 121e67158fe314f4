"""
Fixed-interval throttle for the ingestion loop.

Behaves like a ticker: wait() returns on the next tick, ticks are
interval = 1 / rate seconds apart, and ticks missed while the caller was
busy are dropped rather than accumulated, so a burst after a stall is
limited to one immediate pass.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional


class Throttle:
    def __init__(
        self,
        rate: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if rate <= 0:
            raise ValueError(f"Throttle rate must be positive, got {rate}")
        self.rate = rate
        self.interval = 1.0 / rate
        self._clock = clock
        self._sleep = sleep
        self._next_tick: Optional[float] = None

    async def wait(self):
        """Block until the next tick"""
        now = self._clock()
        if self._next_tick is None:
            self._next_tick = now + self.interval

        if now < self._next_tick:
            await self._sleep(self._next_tick - now)
            self._next_tick += self.interval
            return

        # Late: consume the one pending tick, skip the rest
        missed = int((now - self._next_tick) / self.interval)
        self._next_tick += (missed + 1) * self.interval
