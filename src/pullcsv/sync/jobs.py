"""
Sync and retention jobs.

``SyncJob`` runs one cycle for one pair:

1. pull the remote exclude snapshot (an empty one on failure);
2. pull the payload, excluding known names, into a private temp directory;
3. on success move the files into the destination, expand archives,
   report destination statistics, rebuild the exclude list from the
   destination listing and the previous snapshot, and push it back;
4. remove the temp directory whatever happened.

Transfer failures end the cycle early but never raise.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import structlog

from pullcsv.core.job import Job
from pullcsv.core.logging import get_logger
from pullcsv.core.metrics import Metric, MetricsSink, NullMetrics
from pullcsv.core.models import CycleResult, SweepReport, SyncPairConfig, TransferAttempt
from pullcsv.sync.archives import ArchiveProcessor
from pullcsv.sync.excludes import ExcludeFile
from pullcsv.sync.files import directory_stats, list_names, move_downloads
from pullcsv.sync.retention import RetentionSweeper
from pullcsv.sync.tokens import resolve
from pullcsv.sync.transfer import RsyncTransfer


class SyncJob(Job[CycleResult]):
    """One sync pair, run on the sync cron."""

    def __init__(
        self,
        pair: SyncPairConfig,
        transfer: RsyncTransfer,
        exclude_file: ExcludeFile,
        remote_exclude_path: str,
        work_directory: Path,
        metrics: MetricsSink | None = None,
        archives: ArchiveProcessor | None = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        log = (logger or get_logger(__name__)).bind(destination=pair.dest_dir)
        super().__init__(
            name=f"sync:{pair.exclude_file_name}",
            description=f"Mirror {pair.source_template} into {pair.dest_dir}",
            logger=log,
        )
        self.pair = pair
        self.transfer = transfer
        self.exclude_file = exclude_file
        self.remote_exclude_path = remote_exclude_path
        self.work_directory = work_directory
        self.metrics = metrics or NullMetrics()
        self.archives = archives or ArchiveProcessor(log)
        self.clock = clock

    def get_plan(self) -> str:
        return (
            f"pull {self.remote_exclude_path} -> {self.exclude_file.path}; "
            f"pull {self.pair.source_template} -> {self.pair.dest_dir}; "
            f"push {self.exclude_file.path} -> {self.remote_exclude_path}"
        )

    def execute(self) -> CycleResult:
        source = resolve(self.pair.source_template, self.clock())
        destination = Path(self.pair.dest_dir)
        result = CycleResult(source=source, destination=self.pair.dest_dir)

        result.exclude_pull = self.transfer.pull_exclude(self.remote_exclude_path, self.exclude_file.path)
        if not result.exclude_pull.ok:
            self.logger.info(
                "Could not pull exclude file, starting from an empty one",
                remote=self.remote_exclude_path,
                exit_code=result.exclude_pull.exit_code,
                meaning=result.exclude_pull.meaning,
            )
            self.exclude_file.reset()

        self.work_directory.mkdir(parents=True, exist_ok=True)
        download_dir = Path(
            tempfile.mkdtemp(prefix=self.pair.dest_dir.replace("/", "_"), dir=self.work_directory)
        )
        try:
            self.logger.info(f"Start downloading files from {source} to {download_dir}")
            self._run_cycle(source, destination, download_dir, result)
            self.logger.info(f"Stop downloading files from {source} to {download_dir}")
        finally:
            try:
                shutil.rmtree(download_dir)
            except OSError as e:
                self.logger.warning("Couldn't delete tmp dir", path=str(download_dir), error=str(e))

        return result

    def _run_cycle(
        self, source: str, destination: Path, download_dir: Path, result: CycleResult
    ) -> None:
        pull = self.transfer.pull_payload(source, download_dir, self.exclude_file.path)
        result.payload_pull = pull
        self._report(pull, Metric.PULL_START_TIME, Metric.PULL_STOP_TIME, Metric.PULL_EXIT_CODE)

        if not pull.ok:
            self._warn_transfer("A problem with rsync", pull)
            return

        result.moves = move_downloads(download_dir, destination, self.logger)
        if result.moves.errors:
            self.logger.warning(
                "Something wrong with moving downloaded files from temp location",
                errors=result.moves.errors,
            )
        result.errors.extend(result.moves.errors)

        result.archives = self.archives.process(destination)
        result.errors.extend(result.archives.errors)

        stats = directory_stats(destination)
        result.stats = stats
        self.metrics.set(Metric.OLDEST_FILE_MTIME, self.pair.dest_dir, stats.oldest_mtime)
        self.metrics.set(Metric.NEWEST_FILE_MTIME, self.pair.dest_dir, stats.newest_mtime)
        self.metrics.set(Metric.FILE_COUNT, self.pair.dest_dir, stats.file_count)

        # Expanded archives are gone from the destination but were still retrieved.
        listing = [*list_names(destination), *result.archives.extracted]
        try:
            result.exclude_entries = self.exclude_file.update(listing)
        except OSError as e:
            self.logger.warning(
                "Something was wrong with saving exclude file",
                path=str(self.exclude_file.path),
                error=str(e),
            )
            result.errors.append(f"{self.exclude_file.path}: {e}")
            return

        push = self.transfer.push_exclude(self.exclude_file.path, self.remote_exclude_path)
        result.exclude_push = push
        if not push.ok:
            self._warn_transfer("A problem with uploading exclude file to the server", push)
        self._report(push, Metric.PUSH_START_TIME, Metric.PUSH_STOP_TIME, Metric.PUSH_EXIT_CODE)

    def _report(self, attempt: TransferAttempt, start: Metric, stop: Metric, exit_code: Metric) -> None:
        self.metrics.set(exit_code, self.pair.dest_dir, attempt.exit_code)
        self.metrics.set(start, self.pair.dest_dir, attempt.started_at)
        self.metrics.set(stop, self.pair.dest_dir, attempt.stopped_at)

    def _warn_transfer(self, message: str, attempt: TransferAttempt) -> None:
        self.logger.warning(
            f"{message} (from {attempt.source} to {attempt.destination})",
            exit_code=attempt.exit_code,
            meaning=attempt.meaning,
            stderr=attempt.stderr.strip()[:500],
        )


class RetentionJob(Job[SweepReport]):
    """One destination directory, swept on the retention cron."""

    def __init__(
        self,
        sweeper: RetentionSweeper,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        super().__init__(
            name=f"retention:{sweeper.target.directory}",
            description=f"Delete aged files in {sweeper.target.directory}",
            logger=logger,
        )
        self.sweeper = sweeper

    def get_plan(self) -> str:
        target = self.sweeper.target
        return (
            f"delete files in {target.directory} older than {target.max_age_complete_hours}h, "
            f"partial files older than {target.max_age_partial_hours}h"
        )

    def execute(self) -> SweepReport:
        return self.sweeper.sweep()
