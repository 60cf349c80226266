"""Sync jobs: one full walk, diff and sync cycle with last-run state."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..exceptions import (
    JobAlreadyRunningError,
    SyncCancelledError,
    SyncErrorsError,
    WalkError,
)
from ..utils import DEFAULT_JOB_TIMEOUT
from .cancel import CancelToken
from .comparator import Differ
from .engine import Syncer
from .models import DiffResult, FileEntry, SyncOutcome
from .scanner import LocalWalker, Walker, collect_entries
from .stores import DestinationStore

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Current state of a sync job."""

    IDLE = "idle"
    """Job has not run yet"""

    RUNNING = "running"
    """Job is currently executing"""

    SUCCEEDED = "succeeded"
    """Last run completed without errors"""

    FAILED = "failed"
    """Last run failed, was cancelled or had per-item errors"""


class RunKind(str, Enum):
    """How a single run ended."""

    SUCCEEDED = "succeeded"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    """Sync finished but some items failed"""

    ABORTED = "aborted"
    """A tree could not be enumerated; nothing was synced"""

    CANCELLED = "cancelled"
    """Stopped by cancellation or deadline; outcome is partial"""

    SKIPPED = "skipped"
    """Not started because the job was already running"""


@dataclass(frozen=True)
class RunResult:
    """Result of one job run."""

    kind: RunKind
    outcome: Optional[SyncOutcome] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.kind == RunKind.SUCCEEDED


@dataclass(frozen=True)
class JobSnapshot:
    """Read-only copy of a job's state for display."""

    name: str
    source: str
    destination: str
    schedule: str
    status: JobStatus
    last_kind: Optional[RunKind]
    last_run_at: Optional[datetime]
    last_finished_at: Optional[datetime]
    last_outcome: Optional[SyncOutcome]
    last_error: Optional[Exception]


class Job:
    """A configured mirror of one source directory onto one destination.

    Only the thread currently running the job writes its state; a
    per-job lock refuses a second concurrent run. Other threads read the
    state through :meth:`snapshot`.

    Examples:
        >>> job = Job("docs", Path("/home/user/docs"), LocalStore("/mnt/backup"))
        >>> result = job.run()
        >>> print(result.kind, result.outcome)
    """

    def __init__(
        self,
        name: str,
        source_root: Union[str, Path],
        destination: DestinationStore,
        delete_extra_files: bool = False,
        schedule: str = "interval",
        timeout: Optional[float] = DEFAULT_JOB_TIMEOUT,
        source_walker: Optional[Walker] = None,
        syncer: Optional[Syncer] = None,
    ):
        """Initialize sync job.

        Args:
            name: Unique job name
            source_root: Local directory to mirror
            destination: Destination store to mirror onto
            delete_extra_files: Delete destination paths missing at the source
            schedule: "interval" or "manual"
            timeout: Run budget in seconds (None for no deadline)
            source_walker: Walker for the source (defaults to a LocalWalker)
            syncer: Syncer to apply diffs with
        """
        self.name = name
        self.source_root = Path(source_root)
        self.destination = destination
        self.schedule = schedule
        self.timeout = timeout
        self.differ = Differ(delete_extra_files=delete_extra_files)
        self.syncer = syncer or Syncer()
        self._source_walker = source_walker

        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()

        self.status = JobStatus.IDLE
        self.last_kind: Optional[RunKind] = None
        self.last_run_at: Optional[datetime] = None
        self.last_finished_at: Optional[datetime] = None
        self.last_outcome: Optional[SyncOutcome] = None
        self.last_error: Optional[Exception] = None

    def __repr__(self) -> str:
        return (
            f"Job(name={self.name!r}, source={str(self.source_root)!r}, "
            f"destination={str(self.destination)!r}, status={self.status.value})"
        )

    @property
    def delete_extra_files(self) -> bool:
        return self.differ.delete_extra_files

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def snapshot(self) -> JobSnapshot:
        """Return a consistent copy of the job's state."""
        with self._state_lock:
            return JobSnapshot(
                name=self.name,
                source=str(self.source_root),
                destination=str(self.destination),
                schedule=self.schedule,
                status=self.status,
                last_kind=self.last_kind,
                last_run_at=self.last_run_at,
                last_finished_at=self.last_finished_at,
                last_outcome=self.last_outcome,
                last_error=self.last_error,
            )

    def run(self, cancel: Optional[CancelToken] = None) -> RunResult:
        """Execute one full sync cycle.

        Workflow:
            1. Walk the source tree
            2. Walk the destination tree (empty if it cannot be listed)
            3. Compute the diff
            4. Apply it

        Args:
            cancel: Parent cancellation token; the run derives its own
                token from it bounded by the job timeout

        Returns:
            RunResult describing how the run ended; an unexpected error
            ends the run as ABORTED with the job marked FAILED

        Raises:
            JobAlreadyRunningError: If another run of this job is in progress
        """
        if not self._run_lock.acquire(blocking=False):
            raise JobAlreadyRunningError(self.name)
        try:
            return self._run_locked(cancel)
        except Exception as e:
            logger.exception("Job %s crashed", self.name)
            return self._finish(RunKind.ABORTED, None, e)
        finally:
            self._run_lock.release()

    def plan(self, cancel: Optional[CancelToken] = None) -> DiffResult:
        """Walk both trees and compute the diff without applying it.

        Raises:
            WalkError: If a tree cannot be enumerated
        """
        token = (cancel or CancelToken()).child(timeout=self.timeout)
        source_entries, dest_entries = self._walk_both(token)
        return self.differ.diff(source_entries, dest_entries)

    def _run_locked(self, cancel: Optional[CancelToken]) -> RunResult:
        token = (cancel or CancelToken()).child(timeout=self.timeout)
        logger.info("Running job: %s", self.name)

        with self._state_lock:
            self.status = JobStatus.RUNNING
            self.last_run_at = datetime.now()

        try:
            source_entries, dest_entries = self._walk_both(token)
        except WalkError as e:
            logger.warning("Job %s aborted: %s", self.name, e)
            return self._finish(RunKind.ABORTED, None, e)
        except SyncCancelledError as e:
            return self._finish(RunKind.CANCELLED, None, e)

        diff = self.differ.diff(source_entries, dest_entries)
        logger.debug("Job %s: %s", self.name, diff.counts())

        try:
            outcome = self.syncer.sync(diff, self.source_root, self.destination, token)
        except SyncCancelledError as e:
            logger.warning("Job %s stopped: %s", self.name, e)
            return self._finish(RunKind.CANCELLED, e.outcome, e)

        if outcome.errors:
            error = SyncErrorsError(len(outcome.errors))
            logger.warning("Job %s: %s", self.name, error)
            return self._finish(RunKind.COMPLETED_WITH_ERRORS, outcome, error)

        logger.info(
            "Job %s completed: %d created, %d updated, %d deleted",
            self.name,
            outcome.created,
            outcome.updated,
            outcome.deleted,
        )
        return self._finish(RunKind.SUCCEEDED, outcome, None)

    def _walk_both(
        self, token: CancelToken
    ) -> tuple[list[FileEntry], list[FileEntry]]:
        token.raise_if_cancelled()
        walker = self._source_walker or LocalWalker(self.source_root, cancel=token)
        try:
            source_entries = collect_entries(walker)
        except SyncCancelledError:
            raise
        except Exception as e:
            raise WalkError(f"walk source: {e}") from e

        token.raise_if_cancelled()
        try:
            dest_entries = collect_entries(self.destination.walker(token))
        except SyncCancelledError:
            raise
        except Exception as e:
            raise WalkError(f"walk destination: {e}") from e

        return source_entries, dest_entries

    def _finish(
        self,
        kind: RunKind,
        outcome: Optional[SyncOutcome],
        error: Optional[Exception],
    ) -> RunResult:
        with self._state_lock:
            if kind == RunKind.SUCCEEDED:
                self.status = JobStatus.SUCCEEDED
            else:
                self.status = JobStatus.FAILED
            self.last_kind = kind
            self.last_outcome = outcome
            self.last_error = error
            self.last_finished_at = datetime.now()
        return RunResult(kind=kind, outcome=outcome, error=error)
