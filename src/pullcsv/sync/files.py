"""
Filesystem helpers for destination directories.
"""

from __future__ import annotations

import os
import shutil
import time
from pathlib import Path
from typing import Iterator

import humanize
import structlog

from pullcsv.core.logging import get_logger
from pullcsv.core.models import DirectoryStats, MoveReport

logger = get_logger(__name__)


def iter_files(root: Path) -> Iterator[Path]:
    """Every non-directory below ``root``, recursively."""
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            yield Path(dirpath) / filename


def list_names(root: Path) -> list[str]:
    """Base names of every file below ``root``."""
    return [path.name for path in iter_files(root)]


def move_file(source: Path, destination: Path) -> None:
    """
    Move ``source`` to ``destination``, across devices if needed.

    The content is copied beside the destination as ``tmp_<name>`` and
    renamed into place, so readers of the destination directory never see a
    half-written file. The moved file gets a fresh modification time.
    """
    if source.resolve() == destination.resolve():
        return

    destination.parent.mkdir(parents=True, exist_ok=True)
    tmp_destination = destination.with_name(f"tmp_{destination.name}")
    try:
        shutil.copyfile(source, tmp_destination)
        os.replace(tmp_destination, destination)
    except OSError:
        tmp_destination.unlink(missing_ok=True)
        raise
    source.unlink()


def count_lines(path: Path) -> int:
    count = 0
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            count += chunk.count(b"\n")
    return count


def move_downloads(
    download_dir: Path,
    dest_dir: Path,
    log: structlog.stdlib.BoundLogger | None = None,
) -> MoveReport:
    """Log every downloaded file and move it, flattened, into ``dest_dir``."""
    log = log or logger
    report = MoveReport()

    for path in sorted(iter_files(download_dir)):
        try:
            lines = count_lines(path)
            size = path.stat().st_size
        except OSError as e:
            log.warning("Could not get info about downloaded file", path=str(path), error=str(e))
            lines, size = -1, -1
        log.info(
            f"The file {path.name} was downloaded",
            lines=lines,
            size=humanize.naturalsize(size, binary=True) if size >= 0 else "unknown",
        )

        try:
            move_file(path, dest_dir / path.name)
            report.moved.append(path.name)
        except OSError as e:
            log.warning("Could not move the file", path=str(path), error=str(e))
            report.errors.append(f"{path}: {e}")

    return report


def directory_stats(path: Path) -> DirectoryStats:
    """
    Newest and oldest modification times and entry count of ``path``.

    Only the top level is inspected. Directories count as entries and take
    part in the newest time but not in the oldest. An unreadable directory
    yields -1 for every value.
    """
    newest = 0
    oldest = int(time.time())
    count = 0

    try:
        entries = list(os.scandir(path))
    except OSError as e:
        logger.warning("Could not read directory, reporting -1", path=str(path), error=str(e))
        return DirectoryStats.unreadable()

    for entry in entries:
        try:
            stat = entry.stat(follow_symlinks=False)
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        mtime = int(stat.st_mtime)
        if not is_dir and mtime < oldest:
            oldest = mtime
        if mtime > newest:
            newest = mtime
        count += 1

    return DirectoryStats(newest_mtime=newest, oldest_mtime=oldest, file_count=count)
