"""
pullcsv data models.

Defines the pair, transfer and per-step report structures shared by the
sync and retention jobs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# rsync exit codes, decoded for logs only.
EXIT_CODE_MEANINGS: dict[int, str] = {
    0: "Success",
    1: "Syntax or usage error",
    2: "Protocol incompatibility",
    3: "Errors selecting input/output files, dirs",
    4: (
        "Requested action not supported: an attempt was made to manipulate 64-bit files "
        "on a platform that cannot support them; or an option was specified that is "
        "supported by the client and not by the server."
    ),
    5: "Error starting client-server protocol",
    6: "Daemon unable to append to log-file",
    10: "Error in socket I/O (maybe there is a problem with DNS resolution)",
    11: "Error in file I/O (maybe there is no destination)",
    12: "Error in rsync protocol data stream",
    13: "Errors with program diagnostics",
    14: "Error in IPC code",
    20: "Received SIGUSR1 or SIGINT",
    21: "Some error returned by waitpid()",
    22: "Error allocating core memory buffers",
    23: "Partial transfer due to error (maybe there are not files on remote side by the mask)",
    24: "Partial transfer due to vanished source files",
    25: "The --max-delete limit stopped deletions",
    30: "Timeout in data send/receive",
    35: "Timeout waiting for daemon connection",
}


def describe_exit_code(code: int) -> str:
    return EXIT_CODE_MEANINGS.get(code, "Unknown")


@dataclass(frozen=True)
class SyncPairConfig:
    """One remote source template mirrored into one local destination."""

    source_template: str
    dest_dir: str
    exclude_file_name: str


@dataclass(frozen=True)
class RetentionTarget:
    """A destination directory swept by age."""

    directory: str
    max_age_complete_hours: int
    max_age_partial_hours: int
    partial_pattern: str


class TransferDirection(Enum):
    """What a single rsync invocation moves."""

    PULL_EXCLUDE = "pull-exclude"
    PULL_PAYLOAD = "pull-payload"
    PUSH_EXCLUDE = "push-exclude"


@dataclass
class TransferAttempt:
    """Outcome of one rsync invocation."""

    direction: TransferDirection
    source: str
    destination: str
    started_at: int
    stopped_at: int
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def meaning(self) -> str:
        return describe_exit_code(self.exit_code)


@dataclass(frozen=True)
class DirectoryStats:
    """Modification-time statistics of a destination directory."""

    newest_mtime: int
    oldest_mtime: int
    file_count: int

    @classmethod
    def unreadable(cls) -> DirectoryStats:
        return cls(newest_mtime=-1, oldest_mtime=-1, file_count=-1)


@dataclass
class MoveReport:
    """Files moved from the temporary download directory."""

    moved: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ArchiveReport:
    """Result of expanding archives in a destination."""

    extracted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class SweepReport:
    """Result of one retention sweep."""

    directory: str
    deleted_complete: list[str] = field(default_factory=list)
    deleted_partial: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def deleted(self) -> list[str]:
        return self.deleted_complete + self.deleted_partial


@dataclass
class CycleResult:
    """Everything one sync cycle did for its pair."""

    source: str
    destination: str
    exclude_pull: TransferAttempt | None = None
    payload_pull: TransferAttempt | None = None
    exclude_push: TransferAttempt | None = None
    moves: MoveReport = field(default_factory=MoveReport)
    archives: ArchiveReport = field(default_factory=ArchiveReport)
    stats: DirectoryStats | None = None
    exclude_entries: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def payload_ok(self) -> bool:
        return self.payload_pull is not None and self.payload_pull.ok

    @property
    def success(self) -> bool:
        return (
            self.payload_ok
            and self.exclude_push is not None
            and self.exclude_push.ok
            and not self.errors
        )
