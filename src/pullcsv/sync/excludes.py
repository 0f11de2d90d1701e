"""
Exclude-list store.

The exclude list is the set of filenames already retrieved for one pair. It
is persisted as UTF-8 text, one name per line, sorted ascending, and handed
to rsync through ``--exclude-from``. The remote server has no notion of
delivered files, so this list is what prevents repeated downloads.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pullcsv.core.logging import get_logger

logger = get_logger(__name__)

# Names listed from the filesystem may carry undecodable bytes as surrogate
# escapes; they round-trip to the same bytes on disk.
ENCODING = "utf-8"
ERRORS = "surrogateescape"


def merge(previous: Iterable[str], listing: Iterable[str]) -> list[str]:
    """Deduplicated union of the previous snapshot and the destination listing, sorted."""
    return sorted(set(previous) | set(listing))


def serialized_size(entries: Iterable[str]) -> int:
    """Size in bytes of ``entries`` written one per line."""
    return sum(len(entry.encode(ENCODING, ERRORS)) + 1 for entry in entries)


class TruncationPolicy(Protocol):
    def __call__(self, entries: list[str], max_bytes: int, tail_lines: int) -> list[str]:
        ...


def truncate(entries: list[str], max_bytes: int, tail_lines: int) -> list[str]:
    """
    Keep only the last ``tail_lines`` entries once the list outgrows ``max_bytes``.

    Entries are sorted by name, not by arrival, so this drops alphabetically
    early names regardless of how recently they were retrieved. Those files
    may be downloaded again if they are still on the remote side.
    """
    if serialized_size(entries) <= max_bytes:
        return list(entries)
    if tail_lines <= 0:
        return []
    return list(entries[-tail_lines:])


class ExcludeFile:
    """One exclude file on local disk, owned by a single sync job."""

    def __init__(
        self,
        path: Path,
        max_bytes: int = 9437184,
        tail_lines: int = 20000,
        policy: TruncationPolicy = truncate,
    ) -> None:
        self.path = path
        self.max_bytes = max_bytes
        self.tail_lines = tail_lines
        self.policy = policy

    def reset(self) -> None:
        """Replace the snapshot with an empty file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(b"")

    def read(self) -> list[str]:
        """
        Entries of the current snapshot.

        A missing or unreadable file is an empty snapshot; the next pull may
        then fetch files again.
        """
        try:
            text = self.path.read_text(encoding=ENCODING, errors=ERRORS)
        except OSError as e:
            logger.warning("Could not read exclude file, treating it as empty", path=str(self.path), error=str(e))
            return []
        return [line for line in text.splitlines() if line]

    def write(self, entries: Iterable[str]) -> None:
        """Persist ``entries`` atomically, one per line."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"tmp_{self.path.name}")
        with open(tmp_path, "w", encoding=ENCODING, errors=ERRORS) as f:
            for entry in entries:
                f.write(f"{entry}\n")
        os.replace(tmp_path, self.path)

    def update(self, listing: Iterable[str]) -> list[str]:
        """Merge ``listing`` into the snapshot, bound it, write it back and return it."""
        previous = self.read()
        entries = merge(previous, listing)
        bounded = self.policy(entries, self.max_bytes, self.tail_lines)
        if len(bounded) < len(entries):
            logger.info(
                "Exclude file truncated",
                path=str(self.path),
                before=len(entries),
                after=len(bounded),
            )
        self.write(bounded)
        return bounded
