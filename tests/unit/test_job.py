"""
Tests for pullcsv.core.job module.
"""

import threading

from pullcsv.core.job import Job, JobStatus


class EchoJob(Job[str]):
    """Returns a fixed value, or raises when asked to."""

    def __init__(self, fail: bool = False) -> None:
        super().__init__(name="echo", description="Echo")
        self.fail = fail

    def execute(self) -> str:
        if self.fail:
            raise RuntimeError("boom")
        return "done"

    def get_plan(self) -> str:
        return "echo"


class BlockingJob(Job[None]):
    """Blocks inside ``execute`` until released."""

    def __init__(self) -> None:
        super().__init__(name="blocking", description="Blocks")
        self.entered = threading.Event()
        self.release = threading.Event()

    def execute(self) -> None:
        self.entered.set()
        self.release.wait(5)

    def get_plan(self) -> str:
        return "block"


class TestJob:
    """Tests for the job base class."""

    def test_success(self) -> None:
        job = EchoJob()
        result = job.run()

        assert result is not None
        assert result.success
        assert result.data == "done"
        assert result.duration_seconds is not None
        assert job.status == JobStatus.COMPLETED
        assert job.runs == 1

    def test_failure_is_recorded(self) -> None:
        job = EchoJob(fail=True)
        result = job.run()

        assert result is not None
        assert not result.success
        assert result.error == "boom"
        assert "RuntimeError" in result.error_traceback
        assert job.status == JobStatus.FAILED

    def test_lock_released_after_failure(self) -> None:
        job = EchoJob(fail=True)
        job.run()
        assert not job.is_running
        assert job.run() is not None

    def test_overlapping_run_is_skipped(self) -> None:
        job = BlockingJob()
        thread = threading.Thread(target=job.run)
        thread.start()
        assert job.entered.wait(5)

        assert job.is_running
        assert job.run() is None
        assert job.skipped == 1

        job.release.set()
        thread.join(5)
        assert not job.is_running
        assert job.runs == 1

    def test_repr(self) -> None:
        assert repr(EchoJob()) == "<EchoJob echo>"
