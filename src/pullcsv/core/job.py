"""
pullcsv job base.

A job is one periodic unit of work (a sync pair or a retention target).
Jobs never overlap with themselves: ``Job.run`` holds a per-job lock and
skips an invocation that arrives while the previous one is still running.
"""

from __future__ import annotations

import threading
import traceback
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Generic, TypeVar

import structlog

from pullcsv.core.logging import get_logger

T = TypeVar("T")


class JobStatus(Enum):
    """Status of the latest job invocation."""

    PENDING = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()
    SKIPPED = auto()


@dataclass
class JobResult(Generic[T]):
    """Result of a finished job invocation."""

    success: bool
    data: T | None = None
    error: str | None = None
    error_traceback: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None


class Job(ABC, Generic[T]):
    """Base class for all scheduled pullcsv jobs."""

    def __init__(
        self,
        name: str,
        description: str,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.id = name
        self.name = name
        self.description = description
        self.status = JobStatus.PENDING
        self.result: JobResult[T] | None = None
        self.runs = 0
        self.skipped = 0
        self.logger = logger or get_logger(__name__)
        self._running = threading.Lock()

    @abstractmethod
    def execute(self) -> T:
        """Execute one invocation. Subclasses must implement this."""

    @abstractmethod
    def get_plan(self) -> str:
        """Return a human-readable description of what one invocation does."""

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def run(self) -> JobResult[T] | None:
        """
        Run one invocation unless one is already in flight.

        Returns None when the invocation was skipped. Exceptions raised by
        ``execute`` are logged and recorded in the result, never propagated.
        """
        if not self._running.acquire(blocking=False):
            self.skipped += 1
            self.logger.warning("Job still running, skipping", job_id=self.id)
            return None

        try:
            return self._execute_job()
        finally:
            self._running.release()

    def _execute_job(self) -> JobResult[T]:
        self.status = JobStatus.RUNNING
        self.runs += 1
        started_at = datetime.now()

        try:
            data = self.execute()
            self.status = JobStatus.COMPLETED
            self.result = JobResult(
                success=True,
                data=data,
                start_time=started_at,
                end_time=datetime.now(),
            )
        except Exception as e:
            self.status = JobStatus.FAILED
            self.result = JobResult(
                success=False,
                error=str(e),
                error_traceback=traceback.format_exc(),
                start_time=started_at,
                end_time=datetime.now(),
            )
            self.logger.error("Job failed", job_id=self.id, error=str(e))

        return self.result

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"

