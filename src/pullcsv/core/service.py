"""
pullcsv service wiring.

Builds the pair set from configuration, creates one immutable job per pair
and per retention target, and registers them on the scheduler. Every
configuration problem surfaces here, before anything is scheduled.
"""

from __future__ import annotations

import threading
from collections import Counter

import structlog

from pullcsv import __version__
from pullcsv.core.config import ConfigurationError, PullcsvConfig
from pullcsv.core.logging import get_logger
from pullcsv.core.metrics import MetricsSink, NullMetrics
from pullcsv.core.models import SyncPairConfig
from pullcsv.core.scheduler import JobScheduler, parse_cron
from pullcsv.sync.excludes import ExcludeFile
from pullcsv.sync.jobs import RetentionJob, SyncJob
from pullcsv.sync.naming import local_exclude_path, remote_exclude_path
from pullcsv.sync.pairs import build_retention_targets, build_sync_pairs
from pullcsv.sync.retention import RetentionSweeper
from pullcsv.sync.transfer import RsyncTransfer


class PullService:
    """
    Owns the scheduler and the jobs of one pullcsv process.

    Logger and metrics handles are created once here and passed to every
    job; nothing is torn down while the process runs.
    """

    def __init__(
        self,
        config: PullcsvConfig,
        metrics: MetricsSink | None = None,
        transfer: RsyncTransfer | None = None,
        scheduler: JobScheduler | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger(__name__)
        self.metrics = metrics or NullMetrics()
        self.transfer = transfer or RsyncTransfer(
            binary=config.transfer.binary,
            payload_flags=config.transfer.payload_flags,
        )
        self.scheduler = scheduler or JobScheduler(
            timezone=config.schedule.timezone,
            max_workers=config.schedule.max_workers,
        )
        self.pairs: list[SyncPairConfig] = build_sync_pairs(
            config.sources, config.destinations, config.pod_name, config.stand_name
        )
        self._check_unique_names()
        self.sync_jobs = [self._sync_job(pair) for pair in self.pairs]
        self.retention_jobs = [
            RetentionJob(RetentionSweeper(target, self.logger), self.logger)
            for target in build_retention_targets(self.pairs, config.retention)
        ]
        self._stopped = threading.Event()

    def _check_unique_names(self) -> None:
        counts = Counter(pair.exclude_file_name for pair in self.pairs)
        duplicates = sorted(name for name, count in counts.items() if count > 1)
        if duplicates:
            raise ConfigurationError(f"Several pairs share an exclude file: {', '.join(duplicates)}")

    def _sync_job(self, pair: SyncPairConfig) -> SyncJob:
        exclude = self.config.exclude
        return SyncJob(
            pair=pair,
            transfer=self.transfer,
            exclude_file=ExcludeFile(
                local_exclude_path(pair.exclude_file_name, exclude.local_directory),
                max_bytes=exclude.max_bytes,
                tail_lines=exclude.tail_lines,
            ),
            remote_exclude_path=remote_exclude_path(
                pair.source_template, pair.exclude_file_name, exclude.remote_directory
            ),
            work_directory=self.config.transfer.work_directory,
            metrics=self.metrics,
            logger=self.logger,
        )

    def check(self) -> None:
        """Startup checks: rsync must exist and both cron expressions must parse."""
        if not self.transfer.is_available():
            raise ConfigurationError(f"rsync binary not found at {self.transfer.binary}")
        parse_cron(self.config.schedule.sync_cron, self.config.schedule.timezone)
        parse_cron(self.config.schedule.retention_cron, self.config.schedule.timezone)

    def register(self) -> None:
        for job in self.sync_jobs:
            self.scheduler.register(job, self.config.schedule.sync_cron)
        for job in self.retention_jobs:
            self.scheduler.register(job, self.config.schedule.retention_cron)

    def start(self) -> None:
        self.check()
        self.config.ensure_directories()
        self.register()
        self.scheduler.start()
        self.logger.info(
            "Service started",
            version=__version__,
            sync_jobs=len(self.sync_jobs),
            retention_jobs=len(self.retention_jobs),
        )

    def wait(self, timeout: float | None = None) -> bool:
        """Block until ``stop`` is called; returns whether it was."""
        return self._stopped.wait(timeout)

    def stop(self, wait: bool = True) -> None:
        self.scheduler.shutdown(wait=wait)
        self._stopped.set()
