"""Data model shared by the walker, differ and syncer."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class FileEntry:
    """One entry produced by a tree walk."""

    path: str
    """Path relative to the walked root (using forward slashes)"""

    size: int
    """File size in bytes (0 for directories)"""

    mtime: int
    """Last modification time (Unix timestamp, seconds)"""

    is_dir: bool = False
    """Whether the entry is a directory"""


class SyncAction(str, Enum):
    """Actions the syncer can apply to a destination path."""

    NONE = "none"
    """Already in sync"""

    CREATE = "create"
    """Path exists at source only"""

    UPDATE = "update"
    """Path exists at both ends but destination is stale"""

    DELETE = "delete"
    """Path exists at destination only"""


@dataclass(frozen=True)
class FileDiff:
    """A required action for one relative path."""

    path: str
    action: SyncAction
    source: Optional[FileEntry] = None
    destination: Optional[FileEntry] = None

    def __post_init__(self) -> None:
        if self.source is None and self.destination is None:
            raise ValueError(f"FileDiff for {self.path!r} has neither side")
        if self.action == SyncAction.CREATE and (
            self.source is None or self.destination is not None
        ):
            raise ValueError(f"CREATE for {self.path!r} needs source only")
        if self.action == SyncAction.UPDATE and (
            self.source is None or self.destination is None
        ):
            raise ValueError(f"UPDATE for {self.path!r} needs both sides")
        if self.action == SyncAction.DELETE and (
            self.destination is None or self.source is not None
        ):
            raise ValueError(f"DELETE for {self.path!r} needs destination only")


@dataclass
class DiffResult:
    """Ordered, sparse list of actions needed to bring a destination in sync."""

    diffs: list[FileDiff] = field(default_factory=list)

    def __iter__(self) -> Iterator[FileDiff]:
        return iter(self.diffs)

    def __len__(self) -> int:
        return len(self.diffs)

    @property
    def is_empty(self) -> bool:
        return not self.diffs

    def counts(self) -> dict[str, int]:
        """Count diffs per action.

        Returns:
            Dictionary with "create", "update" and "delete" counts
        """
        stats = {"create": 0, "update": 0, "delete": 0}
        for diff in self.diffs:
            if diff.action != SyncAction.NONE:
                stats[diff.action.value] += 1
        return stats

    def total_bytes(self) -> int:
        """Bytes that creates and updates would transfer."""
        return sum(
            d.source.size
            for d in self.diffs
            if d.action in (SyncAction.CREATE, SyncAction.UPDATE)
            and d.source is not None
            and not d.source.is_dir
        )


@dataclass(frozen=True)
class SyncItemError:
    """A single failed action."""

    path: str
    cause: Exception

    def __str__(self) -> str:
        return f"{self.path}: {self.cause}"


@dataclass(frozen=True)
class SyncOutcome:
    """Statistics of one sync pass."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    bytes_transferred: int = 0
    errors: tuple[SyncItemError, ...] = ()

    @property
    def total_actions(self) -> int:
        return self.created + self.updated + self.deleted

    def to_dict(self) -> dict:
        """Convert outcome to dictionary for JSON serialization."""
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "bytes_transferred": self.bytes_transferred,
            "errors": [{"path": e.path, "cause": str(e.cause)} for e in self.errors],
        }
