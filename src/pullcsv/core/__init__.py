"""
pullcsv Core - service layer.

Contains configuration, logging, metrics, the job base and the scheduler.
"""

from pullcsv.core.config import ConfigurationError, PullcsvConfig
from pullcsv.core.job import Job, JobResult, JobStatus
from pullcsv.core.logging import get_logger, setup_logging
from pullcsv.core.scheduler import JobScheduler

__all__ = [
    "ConfigurationError",
    "PullcsvConfig",
    "Job",
    "JobResult",
    "JobStatus",
    "JobScheduler",
    "get_logger",
    "setup_logging",
]
