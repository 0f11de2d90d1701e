"""
Archive post-processing.

After a successful pull, zip and gzip payloads in the destination are
expanded in place and the archive is removed. The type is detected from the
file content; a failure on one archive does not stop the others.
"""

from __future__ import annotations

import gzip
import os
import re
import shutil
import zipfile
import zlib
from pathlib import Path

import filetype
import structlog

from pullcsv.core.logging import get_logger, log_operation
from pullcsv.core.models import ArchiveReport

CANDIDATE_NAME_RE = re.compile(r"zip|gz")
GZIP_SUFFIXES = (".gz", ".gzip")


class ArchiveError(Exception):
    """Raised when one archive cannot be expanded."""


def detect_mime(path: Path) -> str | None:
    kind = filetype.guess(str(path))
    return kind.mime if kind is not None else None


def unzip(source: Path, destination: Path) -> list[Path]:
    """Extract ``source`` into ``destination``, refusing entries that escape it."""
    root = destination.resolve()
    written: list[Path] = []
    with zipfile.ZipFile(source) as archive:
        for member in archive.infolist():
            target = (root / member.filename).resolve()
            if not str(target).startswith(str(root) + os.sep):
                raise ArchiveError(f"invalid file path: {member.filename}")
            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(member) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            written.append(target)
    return written


def gunzip(source: Path, destination: Path) -> Path:
    """Decompress ``source`` into ``destination``, named after the archive minus its suffix."""
    name = source.name
    for suffix in GZIP_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    else:
        name = f"{name}.out"

    target = destination / name
    with gzip.open(source, "rb") as src, open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)
    return target


def expand_archive(path: Path, destination: Path) -> list[Path]:
    """Expand one archive; raises ArchiveError for unknown or unsupported content."""
    try:
        mime = detect_mime(path)
    except OSError as e:
        raise ArchiveError(str(e)) from e
    if mime is None:
        raise ArchiveError(f"Unknown file type {path}")

    try:
        if mime == "application/zip":
            return unzip(path, destination)
        if mime == "application/gzip":
            return [gunzip(path, destination)]
    # zipfile raises RuntimeError for encrypted members and NotImplementedError
    # for compression methods it cannot read.
    except (
        OSError,
        EOFError,
        RuntimeError,
        NotImplementedError,
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
    ) as e:
        raise ArchiveError(str(e)) from e

    raise ArchiveError(f"{mime} is not zip or gzip")


class ArchiveProcessor:
    """Expands archives found at the top level of a destination directory."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self.logger = logger or get_logger(__name__)

    def candidates(self, directory: Path) -> list[Path]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            self.logger.warning("Could not list directory", path=str(directory), error=str(e))
            return []
        return [p for p in entries if p.is_file() and CANDIDATE_NAME_RE.search(p.name)]

    def process(self, directory: Path) -> ArchiveReport:
        report = ArchiveReport()
        with log_operation("unarchiving files", self.logger, path=str(directory)):
            for path in self.candidates(directory):
                self.logger.info("Unarchive the file", path=str(path))
                try:
                    expand_archive(path, directory)
                except ArchiveError as e:
                    report.skipped.append(path.name)
                    report.errors.append(f"Something was wrong with unarchive the file {path}: {e}")
                    continue

                try:
                    path.unlink()
                except OSError as e:
                    report.errors.append(f"Could not remove the archive {path}: {e}")
                    continue
                self.logger.info("Remove the file", path=str(path))
                report.extracted.append(path.name)

        if report.errors:
            self.logger.warning("Archive errors", errors=report.errors)
        return report
