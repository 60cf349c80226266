"""Tree comparison logic for sync operations."""

from collections.abc import Iterable

from .models import DiffResult, FileDiff, FileEntry, SyncAction


class Differ:
    """Compares source and destination entries to determine sync actions.

    Comparison uses size and modification time only. A file whose size is
    unchanged and whose source mtime is not newer than the destination's
    is considered in sync, even if its content differs.
    """

    def __init__(self, delete_extra_files: bool = False):
        """Initialize differ.

        Args:
            delete_extra_files: Emit DELETE actions for destination paths
                that no longer exist at the source (off by default)
        """
        self.delete_extra_files = delete_extra_files

    def diff(
        self,
        source: Iterable[FileEntry],
        destination: Iterable[FileEntry],
    ) -> DiffResult:
        """Compare source and destination entries.

        Args:
            source: Entries of the source tree
            destination: Entries of the destination tree

        Returns:
            DiffResult with creates and updates sorted by path, followed by
            deletes sorted by path
        """
        source_map = {entry.path: entry for entry in source}
        dest_map = {entry.path: entry for entry in destination}

        diffs: list[FileDiff] = []

        for path in sorted(source_map):
            src = source_map[path]
            dst = dest_map.get(path)

            if dst is None:
                diffs.append(FileDiff(path, SyncAction.CREATE, source=src))
            elif self.needs_update(src, dst):
                diffs.append(
                    FileDiff(path, SyncAction.UPDATE, source=src, destination=dst)
                )

        if self.delete_extra_files:
            for path in sorted(dest_map.keys() - source_map.keys()):
                diffs.append(
                    FileDiff(path, SyncAction.DELETE, destination=dest_map[path])
                )

        return DiffResult(diffs)

    def needs_update(self, source: FileEntry, destination: FileEntry) -> bool:
        """Determine if a destination entry is stale.

        Args:
            source: Source entry
            destination: Destination entry at the same path

        Returns:
            True if the destination must be rewritten
        """
        # Directories are never updated
        if source.is_dir:
            return False

        if source.size != destination.size:
            return True

        return source.mtime > destination.mtime
