"""MirrorBox - keep local folders mirrored onto local or network destinations."""

from .app import Dispatcher, JobFactory, JobRegistry
from .config import Config, ConfigStore, SyncJobConfig
from .exceptions import (
    ConfigError,
    DispatcherStoppedError,
    JobAlreadyRunningError,
    JobNotFoundError,
    MirrorBoxError,
    RemoteStoreError,
    SyncCancelledError,
    SyncErrorsError,
    SyncTimeoutError,
    WalkError,
)
from .sync import Differ, Job, LocalStore, LocalWalker, Syncer

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigStore",
    "SyncJobConfig",
    "Dispatcher",
    "JobFactory",
    "JobRegistry",
    "Differ",
    "Job",
    "LocalStore",
    "LocalWalker",
    "Syncer",
    "MirrorBoxError",
    "ConfigError",
    "DispatcherStoppedError",
    "JobAlreadyRunningError",
    "JobNotFoundError",
    "RemoteStoreError",
    "SyncCancelledError",
    "SyncErrorsError",
    "SyncTimeoutError",
    "WalkError",
]
