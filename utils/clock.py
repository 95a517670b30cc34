"""
Time providers for the automation engine.

Every module reads "now" and waits through a Clock so that simulated runs
and tests can step time deterministically instead of sleeping for real.
"""

import asyncio
import heapq
import itertools
import logging
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class Clock:
    """Wall-clock time provider backed by ``datetime.now`` and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class SimulatedClock(Clock):
    """
    Manually advanced clock.

    ``sleep`` parks the caller until ``advance`` moves simulated time past its
    wake-up instant. Sleepers are released in wake-up order and the event loop
    is allowed to settle after each release, so a chain of sleeps inside the
    advanced window runs to completion within a single ``advance`` call.
    """

    def __init__(self, start: datetime | None = None, settle_rounds: int = 25):
        self._now = start or datetime(2024, 6, 1, 9, 0, 0)
        self._sleepers: list[tuple[datetime, int, asyncio.Future]] = []
        self._sequence = itertools.count()
        self.settle_rounds = settle_rounds

    def now(self) -> datetime:
        return self._now

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        wake_at = self._now + timedelta(seconds=seconds)
        heapq.heappush(self._sleepers, (wake_at, next(self._sequence), future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move simulated time forward, waking every sleeper due on the way."""
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards.")
        target = self._now + timedelta(seconds=seconds)
        await self.settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            wake_at, _, future = heapq.heappop(self._sleepers)
            self._now = wake_at
            if not future.done():
                future.set_result(None)
                await self.settle()
        self._now = target
        await self.settle()

    async def advance_days(self, days: float) -> None:
        await self.advance(days * SECONDS_PER_DAY)

    async def settle(self) -> None:
        """Yield to the event loop until woken tasks have reached their next wait."""
        for _ in range(self.settle_rounds):
            await asyncio.sleep(0)
