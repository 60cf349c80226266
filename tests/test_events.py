"""Tests for JobEvent and EventStream."""

import threading

from mirrorbox.app.events import EventStream, JobEvent
from mirrorbox.sync.cancel import CancelToken
from mirrorbox.sync.job import JobStatus, RunKind
from mirrorbox.sync.models import SyncOutcome


def _event(name: str = "docs", kind: RunKind = RunKind.SUCCEEDED) -> JobEvent:
    status = JobStatus.SUCCEEDED if kind == RunKind.SUCCEEDED else JobStatus.FAILED
    return JobEvent(job_name=name, status=status, kind=kind)


class TestJobEvent:
    """Tests for JobEvent."""

    def test_failed(self):
        assert not _event(kind=RunKind.SUCCEEDED).failed
        assert not _event(kind=RunKind.SKIPPED).failed
        assert _event(kind=RunKind.ABORTED).failed
        assert _event(kind=RunKind.CANCELLED).failed
        assert _event(kind=RunKind.COMPLETED_WITH_ERRORS).failed

    def test_to_dict(self):
        event = JobEvent(
            job_name="docs",
            status=JobStatus.FAILED,
            kind=RunKind.ABORTED,
            outcome=SyncOutcome(created=1),
            error=ValueError("boom"),
        )
        data = event.to_dict()

        assert data["job"] == "docs"
        assert data["status"] == "failed"
        assert data["kind"] == "aborted"
        assert data["outcome"]["created"] == 1
        assert data["error"] == "boom"
        assert "timestamp" in data


class TestEventStream:
    """Tests for the bounded event stream."""

    def test_fifo(self):
        stream = EventStream(capacity=5)
        stream.put(_event("a"))
        stream.put(_event("b"))

        assert len(stream) == 2
        assert stream.get(0).job_name == "a"
        assert stream.get(0).job_name == "b"
        assert stream.get(0) is None

    def test_iteration_ends_after_close(self):
        stream = EventStream()
        stream.put(_event("a"))
        stream.close()

        assert [e.job_name for e in stream] == ["a"]
        assert stream.closed

    def test_put_after_close_is_dropped(self):
        stream = EventStream()
        stream.close()
        assert stream.put(_event()) is False

    def test_full_stream_blocks_until_consumed(self):
        stream = EventStream(capacity=1)
        stream.put(_event("a"))
        done = threading.Event()

        def producer():
            stream.put(_event("b"))
            done.set()

        thread = threading.Thread(target=producer)
        thread.start()
        assert not done.wait(0.2)

        assert stream.get(1).job_name == "a"
        assert done.wait(5)
        assert stream.get(1).job_name == "b"
        thread.join(5)

    def test_full_stream_drops_on_shutdown(self):
        shutdown = CancelToken()
        stream = EventStream(capacity=1, shutdown=shutdown)
        stream.put(_event("a"))
        result = []

        thread = threading.Thread(target=lambda: result.append(stream.put(_event())))
        thread.start()
        shutdown.cancel()
        thread.join(5)

        assert result == [False]
        assert len(stream) == 1

    def test_get_wakes_on_close(self):
        stream = EventStream()
        threading.Timer(0.05, stream.close).start()
        assert stream.get(5) is None
