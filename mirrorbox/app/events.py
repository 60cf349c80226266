"""Job events and the bounded stream that carries them."""

import threading
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..sync.cancel import CancelToken
from ..sync.job import JobStatus, RunKind
from ..sync.models import SyncOutcome
from ..utils import DEFAULT_EVENT_CAPACITY

# How often a blocked producer re-checks for shutdown
_PUT_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class JobEvent:
    """Snapshot emitted once per finished (or refused) job launch."""

    job_name: str
    status: JobStatus
    kind: RunKind
    outcome: Optional[SyncOutcome] = None
    error: Optional[Exception] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.kind not in (RunKind.SUCCEEDED, RunKind.SKIPPED)

    def to_dict(self) -> dict:
        """Convert event to dictionary for JSON serialization."""
        return {
            "job": self.job_name,
            "status": self.status.value,
            "kind": self.kind.value,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "error": str(self.error) if self.error else None,
            "timestamp": self.timestamp.isoformat(),
        }


class EventStream:
    """Bounded multi-producer queue of JobEvents.

    Producers block while the stream is full. Once ``shutdown`` is
    cancelled, a producer that cannot enqueue drops its event instead of
    waiting. After :meth:`close`, iteration ends once the buffered events
    are consumed.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_EVENT_CAPACITY,
        shutdown: Optional[CancelToken] = None,
    ):
        self.capacity = capacity
        self._shutdown = shutdown or CancelToken()
        self._items: deque[JobEvent] = deque()
        self._cond = threading.Condition()
        self._closed = False

    def __iter__(self) -> Iterator[JobEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def put(self, event: JobEvent) -> bool:
        """Enqueue an event.

        Returns:
            True if the event was enqueued, False if it was dropped
        """
        with self._cond:
            while len(self._items) >= self.capacity:
                if self._closed or self._shutdown.cancelled:
                    return False
                self._cond.wait(_PUT_POLL_INTERVAL)
            if self._closed:
                return False
            self._items.append(event)
            self._cond.notify_all()
            return True

    def get(self, timeout: Optional[float] = None) -> Optional[JobEvent]:
        """Dequeue the next event.

        Returns:
            The next event, or None when the stream is closed and drained
            or ``timeout`` elapsed
        """
        with self._cond:
            if not self._cond.wait_for(
                lambda: self._items or self._closed, timeout=timeout
            ):
                return None
            if not self._items:
                return None
            event = self._items.popleft()
            self._cond.notify_all()
            return event

    def close(self) -> None:
        """Stop accepting events and wake all waiting consumers."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
