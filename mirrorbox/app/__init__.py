"""Job registry, dispatcher and event stream."""

from .dispatcher import Dispatcher
from .events import EventStream, JobEvent
from .factory import JobFactory
from .registry import JobRegistry, ReadWriteLock

__all__ = [
    "Dispatcher",
    "EventStream",
    "JobEvent",
    "JobFactory",
    "JobRegistry",
    "ReadWriteLock",
]
