"""
rsync invocation.

rsync is a black box: it gets a source, a destination and some flags, and
hands back an exit code. Non-zero codes are decoded for the logs only; they
never raise.
"""

from __future__ import annotations

import subprocess
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from pullcsv.core.logging import get_logger
from pullcsv.core.models import TransferAttempt, TransferDirection

logger = get_logger(__name__)


Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class RsyncTransfer:
    """Runs the three transfers of a sync cycle."""

    def __init__(
        self,
        binary: Path = Path("/usr/bin/rsync"),
        payload_flags: Sequence[str] = ("-azq", "--partial"),
        runner: Runner = subprocess.run,
    ) -> None:
        self.binary = binary
        self.payload_flags = list(payload_flags)
        self._runner = runner

    def is_available(self) -> bool:
        return self.binary.exists()

    def pull_exclude(self, remote_path: str, local_path: Path) -> TransferAttempt:
        return self._transfer(TransferDirection.PULL_EXCLUDE, remote_path, str(local_path))

    def pull_payload(self, source: str, target_dir: Path, exclude_from: Path) -> TransferAttempt:
        flags = [*self.payload_flags, f"--exclude-from={exclude_from}"]
        return self._transfer(TransferDirection.PULL_PAYLOAD, source, str(target_dir), flags)

    def push_exclude(self, local_path: Path, remote_path: str) -> TransferAttempt:
        return self._transfer(TransferDirection.PUSH_EXCLUDE, str(local_path), remote_path)

    def _transfer(
        self,
        direction: TransferDirection,
        source: str,
        destination: str,
        flags: Sequence[str] = (),
    ) -> TransferAttempt:
        command = [str(self.binary), *flags, source, destination]
        logger.debug("Running command", command=command)
        started_at = int(time.time())

        try:
            result: Any = self._runner(command, capture_output=True, text=True)
            exit_code, stdout, stderr = result.returncode, result.stdout or "", result.stderr or ""
        except OSError as e:
            exit_code, stdout, stderr = -1, "", str(e)

        return TransferAttempt(
            direction=direction,
            source=source,
            destination=destination,
            started_at=started_at,
            stopped_at=int(time.time()),
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
        )
