"""Concurrent execution, scheduling and shutdown of sync jobs."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from ..exceptions import (
    DispatcherStoppedError,
    JobAlreadyRunningError,
    JobNotFoundError,
)
from ..sync.cancel import CancelToken
from ..sync.job import Job, JobStatus, RunKind, RunResult
from ..utils import DEFAULT_EVENT_CAPACITY, DEFAULT_MAX_WORKERS
from .events import EventStream, JobEvent
from .registry import JobRegistry

logger = logging.getLogger(__name__)


class Dispatcher:
    """Runs registered jobs on a bounded worker pool.

    Responsibilities:
        - Launch jobs on demand (``run_now``, ``run_all``) and on a timer
        - Allow at most one execution per job at a time
        - Publish one JobEvent per launch on a single event stream
        - Cancel in-flight work and drain all threads on ``stop``

    Examples:
        >>> dispatcher = Dispatcher(registry, max_workers=4)
        >>> dispatcher.start_scheduler(300)
        >>> for event in dispatcher.events():
        ...     print(event.job_name, event.status)
    """

    def __init__(
        self,
        registry: JobRegistry,
        max_workers: int = DEFAULT_MAX_WORKERS,
        event_capacity: int = DEFAULT_EVENT_CAPACITY,
    ):
        """Initialize dispatcher.

        Args:
            registry: Registry the jobs are looked up in
            max_workers: Maximum number of jobs executing at once; further
                launches wait in the pool's queue
            event_capacity: Number of events buffered before producers block
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.registry = registry
        self.max_workers = max_workers

        self._root = CancelToken()
        self._events = EventStream(event_capacity, shutdown=self._root)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mirrorbox-job"
        )

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._active: set[str] = set()
        self._scheduler: Optional[threading.Thread] = None
        self._stopped = False

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def events(self) -> EventStream:
        """Return the stream of job events, in completion order."""
        return self._events

    def active_jobs(self) -> list[str]:
        """Names of jobs that are running or queued."""
        with self._lock:
            return sorted(self._active)

    def run_now(self, name: str) -> bool:
        """Launch one job in the background.

        Args:
            name: Name of a registered job

        Returns:
            True if launched, False if refused because it is already running
            (a SKIPPED event is emitted in that case)

        Raises:
            JobNotFoundError: If no job has that name
            DispatcherStoppedError: If the dispatcher has been stopped
        """
        job = self.registry.get(name)
        if job is None:
            raise JobNotFoundError(name)
        return self._launch(job)

    def run_all(self) -> list[str]:
        """Launch every registered job in the background.

        Returns:
            Names of the jobs that were launched

        Raises:
            DispatcherStoppedError: If the dispatcher has been stopped
        """
        return [job.name for job in self.registry.all() if self._launch(job)]

    def start_scheduler(self, interval: float) -> None:
        """Run all jobs every ``interval`` seconds until ``stop``.

        Ticks are not suppressed while an earlier wave is still running;
        jobs still busy from that wave are skipped.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        with self._lock:
            if self._stopped:
                raise DispatcherStoppedError("dispatcher is stopped")
            if self._scheduler is not None:
                logger.warning("Scheduler already running")
                return
            self._scheduler = threading.Thread(
                target=self._schedule_loop,
                args=(interval,),
                name="mirrorbox-scheduler",
                daemon=True,
            )
            self._scheduler.start()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is running or queued.

        Returns:
            True if idle, False if ``timeout`` elapsed first
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._active, timeout=timeout)

    def stop(self) -> None:
        """Cancel in-flight jobs and wait for every thread to exit.

        After this returns no job launched by this dispatcher is still
        executing and the event stream is closed. Calling it again is a
        no-op.
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True

        logger.info("Stopping dispatcher...")
        self._root.cancel()

        if self._scheduler is not None:
            self._scheduler.join()
        self._executor.shutdown(wait=True)
        self._events.close()
        logger.info("Dispatcher stopped")

    def _launch(self, job: Job) -> bool:
        with self._lock:
            if self._stopped:
                raise DispatcherStoppedError("dispatcher is stopped")
            busy = job.name in self._active
            if not busy:
                self._active.add(job.name)
                self._executor.submit(self._run_job, job)

        if busy:
            logger.info("Job %s is already running, skipping", job.name)
            self._emit(
                JobEvent(
                    job_name=job.name,
                    status=JobStatus.RUNNING,
                    kind=RunKind.SKIPPED,
                    error=JobAlreadyRunningError(job.name),
                )
            )
            return False
        return True

    def _run_job(self, job: Job) -> None:
        try:
            try:
                result = job.run(self._root)
            except JobAlreadyRunningError as e:
                result = RunResult(kind=RunKind.SKIPPED, error=e)
            except Exception as e:
                logger.exception("Job %s crashed", job.name)
                result = RunResult(kind=RunKind.ABORTED, error=e)

            self._emit(
                JobEvent(
                    job_name=job.name,
                    status=job.snapshot().status,
                    kind=result.kind,
                    outcome=result.outcome,
                    error=result.error,
                )
            )

            if result.error is not None:
                logger.info("Job %s failed: %s", job.name, result.error)
        finally:
            with self._idle:
                self._active.discard(job.name)
                self._idle.notify_all()

    def _emit(self, event: JobEvent) -> None:
        if not self._events.put(event):
            logger.debug("Dropped event for %s during shutdown", event.job_name)

    def _schedule_loop(self, interval: float) -> None:
        while not self._root.wait(interval):
            logger.info("Scheduler tick: running all jobs")
            try:
                self.run_all()
            except DispatcherStoppedError:
                return
