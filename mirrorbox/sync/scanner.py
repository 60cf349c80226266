"""Directory tree walking for sync operations."""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

from ..exceptions import WalkError
from ..utils import TEMP_FILE_PREFIX
from .cancel import CancelToken
from .models import FileEntry

logger = logging.getLogger(__name__)

Visitor = Callable[[FileEntry], None]


class Walker(Protocol):
    """Enumerates a tree as FileEntry records.

    ``walk`` calls ``visit`` once for every entry below the root (the root
    itself is not reported) with a slash-separated path relative to the
    root. The first traversal error is raised as WalkError and stops the
    walk; an exception raised by ``visit`` also stops it.
    """

    def walk(self, visit: Visitor) -> None: ...


class LocalWalker:
    """Walker for a directory on the local filesystem.

    Directories are reported before their contents and siblings are
    visited in name order. Symbolic links (to files or directories, or
    dangling) are skipped and never followed. Leftover temporary files
    from interrupted atomic writes are never reported.

    Examples:
        >>> walker = LocalWalker(Path("/home/user/documents"))
        >>> entries = collect_entries(walker)
    """

    def __init__(self, root: Union[str, Path], cancel: Optional[CancelToken] = None):
        """Initialize local walker.

        Args:
            root: Directory to walk
            cancel: Optional token checked before each directory is read
        """
        self.root = Path(root)
        self.cancel = cancel

    def walk(self, visit: Visitor) -> None:
        if not self.root.is_dir():
            raise WalkError(f"walk error at {self.root}: not a directory")
        self._walk_dir(self.root, visit)

    def _walk_dir(self, directory: Path, visit: Visitor) -> None:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled()

        try:
            with os.scandir(directory) as it:
                items = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise WalkError(f"walk error at {directory}: {e}") from e

        for item in items:
            if item.name.startswith(TEMP_FILE_PREFIX):
                continue

            try:
                if item.is_symlink():
                    logger.debug("Skipping symlink: %s", item.path)
                    continue
                is_dir = item.is_dir(follow_symlinks=False)
                stat = item.stat(follow_symlinks=False)
            except OSError as e:
                raise WalkError(f"get file info for {item.path}: {e}") from e

            # Use as_posix() to ensure forward slashes on all platforms
            relative_path = Path(item.path).relative_to(self.root).as_posix()
            visit(
                FileEntry(
                    path=relative_path,
                    size=0 if is_dir else stat.st_size,
                    mtime=int(stat.st_mtime),
                    is_dir=is_dir,
                )
            )

            if is_dir:
                self._walk_dir(Path(item.path), visit)


def collect_entries(walker: Optional[Walker]) -> list[FileEntry]:
    """Run a walker to completion and return its entries in visit order.

    Args:
        walker: Walker to run, or None for an empty tree

    Returns:
        List of FileEntry objects
    """
    entries: list[FileEntry] = []
    if walker is None:
        return entries
    walker.walk(entries.append)
    logger.debug("Walk produced %d entries", len(entries))
    return entries
