"""Tests for the Job class."""

import os
import tempfile
import threading
from pathlib import Path

import pytest

from mirrorbox.exceptions import (
    JobAlreadyRunningError,
    SyncCancelledError,
    SyncErrorsError,
    SyncTimeoutError,
    WalkError,
)
from mirrorbox.sync.cancel import CancelToken
from mirrorbox.sync.engine import Syncer
from mirrorbox.sync.job import Job, JobStatus, RunKind
from mirrorbox.sync.models import FileEntry
from mirrorbox.sync.stores import LocalStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def src(temp_dir):
    path = temp_dir / "src"
    path.mkdir()
    return path


class BlockingWalker:
    """Walker that blocks until released, for concurrency tests."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def walk(self, visit):
        self.started.set()
        self.release.wait(5)


class ListWalker:
    """Walker over a fixed list of entries."""

    def __init__(self, entries):
        self.entries = entries

    def walk(self, visit):
        for entry in self.entries:
            visit(entry)


class TestJobRun:
    """Tests for the run state machine."""

    def test_initial_state(self, src, temp_dir):
        job = Job("docs", src, LocalStore(temp_dir / "dst"))
        snapshot = job.snapshot()

        assert snapshot.status == JobStatus.IDLE
        assert snapshot.last_run_at is None
        assert snapshot.last_kind is None
        assert not job.is_running

    def test_successful_run(self, src, temp_dir):
        (src / "a.txt").write_bytes(b"0123456789")
        dst = temp_dir / "dst"
        job = Job("docs", src, LocalStore(dst))

        result = job.run()

        assert result.ok
        assert result.kind == RunKind.SUCCEEDED
        assert result.outcome.created == 1
        assert result.outcome.bytes_transferred == 10
        assert (dst / "a.txt").read_bytes() == b"0123456789"

        snapshot = job.snapshot()
        assert snapshot.status == JobStatus.SUCCEEDED
        assert snapshot.last_kind == RunKind.SUCCEEDED
        assert snapshot.last_run_at is not None
        assert snapshot.last_finished_at >= snapshot.last_run_at
        assert snapshot.last_error is None

    def test_second_run_has_nothing_to_do(self, src, temp_dir):
        (src / "a.txt").write_bytes(b"x")
        job = Job("docs", src, LocalStore(temp_dir / "dst"))

        job.run()
        result = job.run()

        assert result.ok
        assert result.outcome.total_actions == 0

    def test_missing_source_aborts(self, temp_dir):
        job = Job("docs", temp_dir / "missing", LocalStore(temp_dir / "dst"))

        result = job.run()

        assert result.kind == RunKind.ABORTED
        assert isinstance(result.error, WalkError)
        assert "walk source" in str(result.error)
        assert result.outcome is None
        assert job.snapshot().status == JobStatus.FAILED

    def test_delete_extra_files(self, src, temp_dir):
        dst = temp_dir / "dst"
        dst.mkdir()
        (dst / "old.txt").write_bytes(b"x")
        job = Job("docs", src, LocalStore(dst), delete_extra_files=True)

        result = job.run()

        assert result.outcome.deleted == 1
        assert not (dst / "old.txt").exists()

    def test_item_errors_complete_with_errors(self, src, temp_dir):
        """A source entry that cannot be read is reported per item."""
        walker = ListWalker([FileEntry("ghost.txt", 3, 100)])
        job = Job("docs", src, LocalStore(temp_dir / "dst"), source_walker=walker)

        result = job.run()

        assert result.kind == RunKind.COMPLETED_WITH_ERRORS
        assert isinstance(result.error, SyncErrorsError)
        assert str(result.error) == "1 errors during sync"
        assert len(result.outcome.errors) == 1
        assert job.snapshot().status == JobStatus.FAILED

    def test_cancelled_parent(self, src, temp_dir):
        (src / "a.txt").write_bytes(b"x")
        root = CancelToken()
        root.cancel()
        job = Job("docs", src, LocalStore(temp_dir / "dst"))

        result = job.run(root)

        assert result.kind == RunKind.CANCELLED
        assert isinstance(result.error, SyncCancelledError)
        assert not (temp_dir / "dst" / "a.txt").exists()
        assert job.snapshot().status == JobStatus.FAILED

    def test_deadline_exceeded(self, src, temp_dir):
        (src / "a.txt").write_bytes(b"x")
        job = Job("docs", src, LocalStore(temp_dir / "dst"), timeout=0)

        result = job.run()

        assert result.kind == RunKind.CANCELLED
        assert isinstance(result.error, SyncTimeoutError)

    def test_concurrent_run_refused(self, src, temp_dir):
        walker = BlockingWalker()
        job = Job("docs", src, LocalStore(temp_dir / "dst"), source_walker=walker)
        thread = threading.Thread(target=job.run)
        thread.start()
        try:
            assert walker.started.wait(5)
            assert job.is_running
            assert job.snapshot().status == JobStatus.RUNNING
            with pytest.raises(JobAlreadyRunningError):
                job.run()
        finally:
            walker.release.set()
            thread.join(5)

        assert not job.is_running
        assert job.snapshot().status == JobStatus.SUCCEEDED


class RaisingWalker:
    """Walker that fails with an arbitrary exception."""

    def __init__(self, error):
        self.error = error

    def walk(self, visit):
        raise self.error


class UnreadableStore(LocalStore):
    """Local store whose listing always fails."""

    def walker(self, cancel=None):
        return RaisingWalker(OSError("share unreachable"))


class TestJobFailures:
    """Tests for runs ending early on unexpected errors."""

    def test_source_walker_os_error_aborts(self, src, temp_dir):
        """Any enumeration error of the source aborts the run."""
        walker = RaisingWalker(PermissionError("denied"))
        job = Job("docs", src, LocalStore(temp_dir / "dst"), source_walker=walker)

        result = job.run()

        assert result.kind == RunKind.ABORTED
        assert isinstance(result.error, WalkError)
        assert "walk source: denied" in str(result.error)
        snapshot = job.snapshot()
        assert snapshot.status == JobStatus.FAILED
        assert snapshot.last_finished_at is not None
        assert not job.is_running

    def test_destination_walk_failure_aborts(self, src, temp_dir):
        """A destination that cannot be listed aborts before any write."""
        (src / "a.txt").write_bytes(b"x")
        dst = temp_dir / "dst"
        dst.mkdir()
        job = Job("docs", src, UnreadableStore(dst))

        result = job.run()

        assert result.kind == RunKind.ABORTED
        assert isinstance(result.error, WalkError)
        assert str(result.error).startswith("walk destination: ")
        assert not (dst / "a.txt").exists()
        assert job.snapshot().status == JobStatus.FAILED

    def test_progress_callback_error_marks_failed(self, src, temp_dir):
        """An error escaping the sync pass still finishes the run."""
        (src / "a.txt").write_bytes(b"x")

        def explode(file_diff, succeeded):
            raise RuntimeError("callback broke")

        job = Job(
            "docs",
            src,
            LocalStore(temp_dir / "dst"),
            syncer=Syncer(progress_callback=explode),
        )

        result = job.run()

        assert result.kind == RunKind.ABORTED
        assert isinstance(result.error, RuntimeError)
        snapshot = job.snapshot()
        assert snapshot.status == JobStatus.FAILED
        assert snapshot.last_kind == RunKind.ABORTED
        assert snapshot.last_finished_at is not None
        assert not job.is_running

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_in_source_do_not_break_runs(self, src, temp_dir):
        """Dangling and directory symlinks are ignored on every run."""
        target = temp_dir / "target"
        target.mkdir()
        (src / "alias").symlink_to(target, target_is_directory=True)
        (src / "broken").symlink_to(temp_dir / "missing")
        (src / "a.txt").write_bytes(b"x")
        job = Job("docs", src, LocalStore(temp_dir / "dst"))

        first = job.run()
        second = job.run()

        assert first.ok
        assert first.outcome.created == 1
        assert second.ok
        assert second.outcome.total_actions == 0


class TestJobPlan:
    """Tests for computing a plan without syncing."""

    def test_plan_does_not_write(self, src, temp_dir):
        (src / "a.txt").write_bytes(b"x")
        dst = temp_dir / "dst"
        job = Job("docs", src, LocalStore(dst))

        diff = job.plan()

        assert diff.counts()["create"] == 1
        assert not dst.exists()
        assert job.snapshot().status == JobStatus.IDLE

    def test_plan_missing_source_raises(self, temp_dir):
        job = Job("docs", temp_dir / "missing", LocalStore(temp_dir / "dst"))
        with pytest.raises(WalkError):
            job.plan()
