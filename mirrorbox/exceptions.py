"""Exceptions raised by MirrorBox."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .sync.models import SyncOutcome


class MirrorBoxError(Exception):
    """Base exception for all MirrorBox errors."""


class ConfigError(MirrorBoxError):
    """Configuration file is unreadable or invalid."""


class WalkError(MirrorBoxError):
    """A source or destination tree could not be enumerated."""


class RemoteStoreError(MirrorBoxError):
    """A remote destination operation failed."""


class SyncCancelledError(MirrorBoxError):
    """A sync pass was stopped before all actions were applied.

    The actions applied before the stop remain in effect; ``outcome``
    describes them.
    """

    def __init__(self, message: str = "sync cancelled", outcome=None):
        super().__init__(message)
        self.outcome: Optional["SyncOutcome"] = outcome


class SyncTimeoutError(SyncCancelledError):
    """A sync pass ran past its deadline."""

    def __init__(self, message: str = "sync deadline exceeded", outcome=None):
        super().__init__(message, outcome)


class SyncErrorsError(MirrorBoxError):
    """A sync pass completed but some items failed."""

    def __init__(self, count: int):
        super().__init__(f"{count} errors during sync")
        self.count = count


class JobNotFoundError(MirrorBoxError):
    """No job is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"job not found: {name}")
        self.name = name


class JobAlreadyRunningError(MirrorBoxError):
    """The job already has an execution in progress."""

    def __init__(self, name: str):
        super().__init__(f"job already running: {name}")
        self.name = name


class DispatcherStoppedError(MirrorBoxError):
    """The dispatcher has been stopped and accepts no more work."""
