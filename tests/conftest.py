"""
Pytest configuration and fixtures for pullcsv tests.
"""

import os
import shutil
import sys
import tempfile
import time
import zipfile
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pullcsv.core.models import TransferAttempt, TransferDirection  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def age_file(path: Path, hours: float) -> None:
    """Set mtime and atime of ``path`` to ``hours`` ago."""
    stamp = time.time() - hours * 3600
    os.utime(path, (stamp, stamp))


def make_zip(path: Path, members: dict[str, str], encrypted: bool = False, method: int | None = None) -> Path:
    """
    Write a zip archive; optionally rewrite its headers.

    ``encrypted`` sets the encryption flag of every member and ``method``
    replaces the compression method (9 is deflate64), both in the local and
    the central headers. zipfile cannot write either on its own.
    """
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)

    data = bytearray(path.read_bytes())
    # (signature, offset of general purpose flags, offset of compression method)
    for signature, flags_at, method_at in ((b"PK\x03\x04", 6, 8), (b"PK\x01\x02", 8, 10)):
        start = data.find(signature)
        while start != -1:
            if encrypted:
                data[start + flags_at] |= 0x01
            if method is not None:
                data[start + method_at : start + method_at + 2] = method.to_bytes(2, "little")
            start = data.find(signature, start + 4)
    path.write_bytes(bytes(data))
    return path


class RecordingMetrics:
    """Metrics sink that keeps the last value per (metric, path)."""

    def __init__(self) -> None:
        self.values: dict[tuple[object, str], float] = {}

    def set(self, metric: object, path: str, value: float) -> None:
        self.values[(metric, path)] = value

    def get(self, metric: object, path: str) -> float | None:
        return self.values.get((metric, path))


class FakeRemote:
    """
    Stand-in for ``RsyncTransfer`` backed by local directories.

    ``payload`` holds the files the remote offers; ``exclude_files`` holds the
    remote copies of exclude files keyed by remote path.
    """

    def __init__(self, payload_dir: Path) -> None:
        self.payload_dir = payload_dir
        self.exclude_files: dict[str, str] = {}
        self.payload_exit_code = 0
        self.pull_exclude_exit_code: int | None = None
        self.push_exit_code = 0
        self.excluded_at_pull: list[list[str]] = []
        self.calls: list[TransferDirection] = []

    def _attempt(self, direction: TransferDirection, source: str, destination: str, code: int) -> TransferAttempt:
        self.calls.append(direction)
        now = int(time.time())
        return TransferAttempt(
            direction=direction,
            source=source,
            destination=destination,
            started_at=now,
            stopped_at=now,
            exit_code=code,
        )

    def pull_exclude(self, remote_path: str, local_path: Path) -> TransferAttempt:
        code = self.pull_exclude_exit_code
        if code is None:
            code = 0 if remote_path in self.exclude_files else 23
        if code == 0:
            local_path.write_text(self.exclude_files[remote_path], encoding="utf-8")
        return self._attempt(TransferDirection.PULL_EXCLUDE, remote_path, str(local_path), code)

    def pull_payload(self, source: str, target_dir: Path, exclude_from: Path) -> TransferAttempt:
        excluded = [line for line in exclude_from.read_text(encoding="utf-8").splitlines() if line]
        self.excluded_at_pull.append(excluded)
        if self.payload_exit_code == 0:
            for path in sorted(self.payload_dir.iterdir()):
                if path.name not in excluded:
                    shutil.copy2(path, target_dir / path.name)
        return self._attempt(TransferDirection.PULL_PAYLOAD, source, str(target_dir), self.payload_exit_code)

    def push_exclude(self, local_path: Path, remote_path: str) -> TransferAttempt:
        if self.push_exit_code == 0:
            self.exclude_files[remote_path] = local_path.read_text(encoding="utf-8")
        return self._attempt(TransferDirection.PUSH_EXCLUDE, str(local_path), remote_path, self.push_exit_code)

    def is_available(self) -> bool:
        return True


@pytest.fixture
def recording_metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def env() -> dict[str, str]:
    """A complete, valid environment."""
    return {
        "DOWNLOAD_FROM": "rsync://user@server-name/pullcsv/shops/FULLSTOCK*_TODAY_*",
        "DOWNLOAD_TO": "/data/stocks/in",
        "RSYNC_PASSWORD": "secret",
        "POD_NAME": "myapp-5448486d5c-qjpvq",
        "STAND_NAME": "dev25",
    }


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


@pytest.fixture
def aged() -> Callable[[Path, float], None]:
    """The ``age_file`` helper."""
    return age_file


@pytest.fixture
def remote(temp_dir: Path) -> FakeRemote:
    payload_dir = temp_dir / "remote"
    payload_dir.mkdir()
    return FakeRemote(payload_dir)


@pytest.fixture
def zip_builder() -> Callable[..., Path]:
    """The ``make_zip`` helper."""
    return make_zip
