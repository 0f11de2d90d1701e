"""
Retention sweeper.

Deletes files older than the complete-file threshold, and rsync partial
files (``.name.XXXXXX``) older than the much shorter partial threshold.
Sync jobs only place files with fresh timestamps, so a sweep never removes
something a running transfer just delivered.
"""

from __future__ import annotations

import os
import re
import time
from pathlib import Path

import structlog

from pullcsv.core.logging import get_logger, log_operation
from pullcsv.core.models import RetentionTarget, SweepReport

HOUR = 3600


def is_older_than(mtime: float, hours: int, now: float) -> bool:
    return now - mtime > hours * HOUR


class RetentionSweeper:
    """Applies one ``RetentionTarget``."""

    def __init__(
        self,
        target: RetentionTarget,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.target = target
        self.partial_re = re.compile(target.partial_pattern)
        self.logger = logger or get_logger(__name__)

    def is_partial(self, name: str) -> bool:
        return self.partial_re.search(name) is not None

    def sweep(self, now: float | None = None) -> SweepReport:
        now = time.time() if now is None else now
        root = Path(self.target.directory)
        report = SweepReport(directory=str(root))

        with log_operation("deleting old files", self.logger, path=str(root)):
            for dirpath, _dirnames, filenames in os.walk(root, onerror=self._walk_error(report)):
                for filename in filenames:
                    self._check(Path(dirpath) / filename, now, report)

        return report

    def _check(self, path: Path, now: float, report: SweepReport) -> None:
        try:
            mtime = path.lstat().st_mtime
        except OSError as e:
            self.logger.warning("Could not get info about file", path=str(path), error=str(e))
            return

        if is_older_than(mtime, self.target.max_age_complete_hours, now):
            kind, deleted = "complete", report.deleted_complete
            hours = self.target.max_age_complete_hours
        elif self.is_partial(path.name) and is_older_than(mtime, self.target.max_age_partial_hours, now):
            kind, deleted = "partial", report.deleted_partial
            hours = self.target.max_age_partial_hours
        else:
            return

        self.logger.info(f"The {kind} file is older than {hours} hours and will be deleted", path=str(path))
        try:
            path.unlink()
        except OSError as e:
            self.logger.warning("Could not delete the file", path=str(path), error=str(e))
            report.errors.append(f"{path}: {e}")
            return
        deleted.append(str(path))

    def _walk_error(self, report: SweepReport):
        def onerror(error: OSError) -> None:
            self.logger.warning("Could not walk through directory", path=error.filename, error=str(error))
            report.errors.append(f"{error.filename}: {error}")

        return onerror
