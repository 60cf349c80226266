"""Registry of configured jobs."""

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Optional

from ..sync.job import Job, JobSnapshot


class ReadWriteLock:
    """Lock allowing many readers or a single writer.

    Waiting writers block new readers so a steady stream of reads cannot
    starve a registry update.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class JobRegistry:
    """Name-keyed, insertion-ordered collection of jobs.

    This is the single authoritative set of Job instances. Registering a
    job under an existing name replaces the earlier one.
    """

    def __init__(self, jobs: Optional[Iterable[Job]] = None):
        self._lock = ReadWriteLock()
        self._jobs: dict[str, Job] = {}
        for job in jobs or []:
            self._jobs[job.name] = job

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._jobs)

    def __contains__(self, name: object) -> bool:
        with self._lock.read_locked():
            return name in self._jobs

    def add(self, job: Job) -> None:
        with self._lock.write_locked():
            self._jobs[job.name] = job

    def remove(self, name: str) -> Optional[Job]:
        """Remove a job, returning it if it was registered."""
        with self._lock.write_locked():
            return self._jobs.pop(name, None)

    def replace_all(self, jobs: Iterable[Job]) -> None:
        """Swap the whole registry for a freshly loaded set of jobs."""
        new_jobs = {job.name: job for job in jobs}
        with self._lock.write_locked():
            self._jobs = new_jobs

    def get(self, name: str) -> Optional[Job]:
        with self._lock.read_locked():
            return self._jobs.get(name)

    def all(self) -> list[Job]:
        """Return the registered jobs in registration order."""
        with self._lock.read_locked():
            return list(self._jobs.values())

    def names(self) -> list[str]:
        with self._lock.read_locked():
            return list(self._jobs)

    def snapshots(self) -> list[JobSnapshot]:
        """Return state copies of all jobs for display."""
        return [job.snapshot() for job in self.all()]
