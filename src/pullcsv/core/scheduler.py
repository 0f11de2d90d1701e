"""
pullcsv job scheduler.

Registers jobs against cron expressions on an APScheduler background
scheduler. Each job is singleton (``max_instances=1``): a firing that
arrives while the previous invocation of the same job is still running is
skipped, not queued. Different jobs run concurrently on the thread pool.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from pullcsv.core.config import ConfigurationError
from pullcsv.core.job import Job
from pullcsv.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScheduledJob:
    """A job bound to its cron expression."""

    job: Job[Any]
    cron_spec: str
    singleton: bool = True


def parse_cron(cron_spec: str, timezone: str = "UTC") -> CronTrigger:
    """Parse a 5-field crontab expression, raising ConfigurationError when malformed."""
    try:
        return CronTrigger.from_crontab(cron_spec, timezone=timezone)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid cron expression {cron_spec!r}: {e}") from e


class JobScheduler:
    """Runs registered jobs on their cron schedules."""

    def __init__(self, timezone: str = "UTC", max_workers: int = 10) -> None:
        self.timezone = timezone
        self._scheduler = BackgroundScheduler(
            timezone=timezone,
            executors={"default": ThreadPoolExecutor(max_workers)},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": None},
        )
        self._registered: list[ScheduledJob] = []
        self.skipped: Counter[str] = Counter()
        self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)

    def _on_max_instances(self, event: JobSubmissionEvent) -> None:
        self.skipped[event.job_id] += 1
        logger.warning("Previous run still in progress, firing skipped", job_id=event.job_id)

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._registered)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def register(self, job: Job[Any], cron_spec: str) -> ScheduledJob:
        """Register a job; a malformed cron expression is fatal."""
        trigger = parse_cron(cron_spec, self.timezone)
        self._scheduler.add_job(
            job.run,
            trigger=trigger,
            id=job.id,
            name=job.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduled = ScheduledJob(job=job, cron_spec=cron_spec)
        self._registered.append(scheduled)
        logger.info("Job registered", job_id=job.id, cron=cron_spec)
        return scheduled

    def next_run_time(self, job_id: str) -> datetime | None:
        aps_job = self._scheduler.get_job(job_id)
        if aps_job is None:
            return None
        return getattr(aps_job, "next_run_time", None)

    def start(self) -> None:
        self._scheduler.start()
        logger.info("Scheduler started", jobs=len(self._registered))

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")
