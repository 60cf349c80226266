"""Sync engine for MirrorBox - walk, diff and mirror directory trees."""

from .cancel import CancelToken
from .comparator import Differ
from .engine import Syncer
from .job import Job, JobSnapshot, JobStatus, RunKind, RunResult
from .models import (
    DiffResult,
    FileDiff,
    FileEntry,
    SyncAction,
    SyncItemError,
    SyncOutcome,
)
from .scanner import LocalWalker, Walker, collect_entries
from .stores import (
    DestinationStore,
    LocalStore,
    NullRemoteStore,
    RemoteConfig,
    RemoteDestination,
    RemoteStore,
    is_remote_destination,
)

__all__ = [
    "CancelToken",
    "Differ",
    "Syncer",
    "Job",
    "JobSnapshot",
    "JobStatus",
    "RunKind",
    "RunResult",
    "DiffResult",
    "FileDiff",
    "FileEntry",
    "SyncAction",
    "SyncItemError",
    "SyncOutcome",
    "LocalWalker",
    "Walker",
    "collect_entries",
    "DestinationStore",
    "LocalStore",
    "NullRemoteStore",
    "RemoteConfig",
    "RemoteDestination",
    "RemoteStore",
    "is_remote_destination",
]
