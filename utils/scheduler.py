"""
Fixed-period job scheduler driven by a Clock.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from utils.clock import Clock

logger = logging.getLogger(__name__)

JobCallback = Callable[[], Coroutine[Any, Any, Any]]
ErrorHandler = Callable[[Exception, dict[str, Any]], Coroutine[Any, Any, None]]


@dataclass
class PeriodicJob:
    name: str
    interval: float  # seconds
    callback: JobCallback
    on_error: ErrorHandler | None = field(default=None, repr=False)
    runs: int = 0
    failures: int = 0
    task: asyncio.Task | None = field(default=None, repr=False)


class PeriodicScheduler:
    """Runs each registered job every ``interval`` seconds of clock time."""

    def __init__(self, clock: Clock):
        self.clock = clock
        self.jobs: dict[str, PeriodicJob] = {}
        self.running = False

    def add_job(
        self, name: str, interval: float, callback: JobCallback, on_error: ErrorHandler | None = None
    ) -> PeriodicJob:
        if interval <= 0:
            raise ValueError(f"Job '{name}' needs a positive interval, got {interval}")
        if name in self.jobs:
            raise ValueError(f"Job '{name}' is already registered")
        job = PeriodicJob(name=name, interval=interval, callback=callback, on_error=on_error)
        self.jobs[name] = job
        if self.running:
            job.task = asyncio.create_task(self._run(job), name=f"job:{name}")
        return job

    def start(self) -> None:
        """Spawn one loop task per job. Must be called from a running event loop."""
        if self.running:
            logger.warning("Scheduler already running")
            return
        self.running = True
        for job in self.jobs.values():
            job.task = asyncio.create_task(self._run(job), name=f"job:{job.name}")
        logger.info(f"Scheduler started with {len(self.jobs)} jobs")

    async def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        tasks = [job.task for job in self.jobs.values() if job.task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for job in self.jobs.values():
            job.task = None
        logger.info("Scheduler stopped")

    async def _run(self, job: PeriodicJob) -> None:
        try:
            while self.running:
                await self.clock.sleep(job.interval)
                try:
                    await job.callback()
                    job.runs += 1
                except Exception as e:
                    # A failing job must not kill its own timer
                    job.failures += 1
                    logger.error(f"Periodic job '{job.name}' failed: {type(e).__name__}: {e}", exc_info=True)
                    if job.on_error is not None:
                        await job.on_error(e, {"job": job.name, "run": job.runs + job.failures})
        except asyncio.CancelledError:
            logger.debug(f"Periodic job '{job.name}' cancelled")
            raise
