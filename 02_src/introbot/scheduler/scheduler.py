"""Polling scheduler for the periodic jobs."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable

from ..clock import Clock, SystemClock
from ..logging_config import get_logger
from .triggers import ITrigger

logger = get_logger(__name__)

Job = Callable[[], Awaitable[Any]]


@dataclass
class ScheduledJob:
    """A registered job and its next fire time."""

    name: str
    trigger: ITrigger
    job: Job
    next_run: datetime


class Scheduler:
    """Runs registered jobs when their trigger fires.

    Jobs are awaited one after another, so a job never overlaps itself or any
    other scheduled job.
    """

    def __init__(self, clock: Clock | None = None, poll_interval: float = 30.0):
        self._clock = clock or SystemClock()
        self._poll_interval = poll_interval
        self._jobs: list[ScheduledJob] = []
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs)

    def register(self, name: str, trigger: ITrigger, job: Job) -> ScheduledJob:
        """Register a job; its first run is the trigger's next fire time from now."""
        if any(j.name == name for j in self._jobs):
            raise ValueError(f"Job {name!r} already registered")
        scheduled = ScheduledJob(
            name=name, trigger=trigger, job=job, next_run=trigger.next_after(self._clock.now())
        )
        self._jobs.append(scheduled)
        logger.info(f"Registered job {name} with {trigger!r}, next run {scheduled.next_run}")
        return scheduled

    async def run_pending(self) -> list[str]:
        """Run every job that is due. Returns the names of the jobs that ran."""
        now = self._clock.now()
        ran = []
        for scheduled in self._jobs:
            if scheduled.next_run > now:
                continue
            logger.info(f"Running job {scheduled.name}", extra={"job": scheduled.name})
            try:
                await scheduled.job()
            except Exception as e:
                logger.error(
                    f"Job {scheduled.name} failed: {e}", exc_info=True, extra={"job": scheduled.name}
                )
            scheduled.next_run = scheduled.trigger.next_after(self._clock.now())
            ran.append(scheduled.name)
        return ran

    def start(self) -> None:
        """Start polling in a background task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll(self) -> None:
        while self._running:
            try:
                await self.run_pending()
            except Exception as e:
                logger.error(f"Scheduler poll error: {e}", exc_info=True)
            await asyncio.sleep(self._poll_interval)
