"""APScheduler adapter for the TriggerSchedulerPort."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

LOGGER = logging.getLogger(__name__)


def build_scheduler(timezone: str) -> AsyncIOScheduler:
    """Create the process scheduler; jobs are given times in ``timezone``."""

    return AsyncIOScheduler(
        timezone=timezone,
        job_defaults={
            "coalesce": True,  # If multiple runs were missed, run once not N times
            "max_instances": 1,  # A trigger never overlaps with itself
            "misfire_grace_time": 60,  # Late fires are re-checked against the local clock anyway
        },
    )


class APSchedulerTriggers:
    """Registers daily cron jobs on an AsyncIOScheduler."""

    def __init__(self, scheduler: AsyncIOScheduler) -> None:
        self._scheduler = scheduler

    def add_daily(self, hour: int, minute: int, callback: Callable[[], Awaitable[None]], name: str) -> Job:
        trigger = CronTrigger(hour=hour, minute=minute, timezone=self._scheduler.timezone)
        return self._scheduler.add_job(callback, trigger, name=name)

    def cancel(self, handle: Job) -> None:
        try:
            handle.remove()
        except JobLookupError:
            LOGGER.debug("Job %s was already removed", handle.id)

    def add_interval(self, minutes: int, callback: Callable[[], Awaitable[None]], name: str) -> Job:
        """Register the fixed-cadence job used for periodic reconciliation."""

        return self._scheduler.add_job(callback, IntervalTrigger(minutes=minutes), name=name)
