"""Core sync engine for applying a diff to a destination."""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Union

from ..exceptions import SyncCancelledError
from .cancel import CancelToken
from .models import DiffResult, FileDiff, SyncAction, SyncItemError, SyncOutcome
from .stores import DestinationStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[FileDiff, bool], None]


class _OutcomeCounter:
    """Mutable tally used while a pass is running."""

    def __init__(self) -> None:
        self.created = 0
        self.updated = 0
        self.deleted = 0
        self.bytes_transferred = 0
        self.errors: list[SyncItemError] = []

    def freeze(self) -> SyncOutcome:
        return SyncOutcome(
            created=self.created,
            updated=self.updated,
            deleted=self.deleted,
            bytes_transferred=self.bytes_transferred,
            errors=tuple(self.errors),
        )


class Syncer:
    """Applies a DiffResult to a destination, one action at a time.

    The pass is not transactional: actions applied before a failure or a
    cancellation stay applied. Individual failures are recorded in the
    outcome and the pass continues; only cancellation ends it early.
    """

    def __init__(self, progress_callback: Optional[ProgressCallback] = None):
        """Initialize syncer.

        Args:
            progress_callback: Optional callback invoked after each action
                with the diff and whether it succeeded
        """
        self.progress_callback = progress_callback

    def sync(
        self,
        diff: DiffResult,
        source_root: Union[str, Path],
        destination: DestinationStore,
        cancel: Optional[CancelToken] = None,
    ) -> SyncOutcome:
        """Apply a diff.

        Args:
            diff: Actions to apply, in order
            source_root: Root directory the diff's source paths are relative to
            destination: Destination store to write to
            cancel: Token checked before each action and between copy chunks

        Returns:
            SyncOutcome with statistics and per-item errors

        Raises:
            SyncCancelledError: If the token fired; ``outcome`` holds the
                partial statistics (SyncTimeoutError on deadline)
        """
        source_root = Path(source_root)
        counter = _OutcomeCounter()
        start = time.time()

        for file_diff in diff:
            if cancel is not None and cancel.cancelled:
                logger.debug("Sync cancelled before %s", file_diff.path)
                raise cancel.error(counter.freeze())

            try:
                self._apply(file_diff, source_root, destination, cancel, counter)
                succeeded = True
            except SyncCancelledError as e:
                logger.debug("Sync cancelled during %s", file_diff.path)
                e.outcome = counter.freeze()
                raise
            except Exception as e:
                logger.debug("Failed to sync %s: %s", file_diff.path, e)
                counter.errors.append(SyncItemError(file_diff.path, e))
                succeeded = False

            if self.progress_callback is not None:
                self.progress_callback(file_diff, succeeded)

        logger.debug(
            "Applied %d actions in %.2fs (%d errors)",
            len(diff),
            time.time() - start,
            len(counter.errors),
        )
        return counter.freeze()

    def _apply(
        self,
        file_diff: FileDiff,
        source_root: Path,
        destination: DestinationStore,
        cancel: Optional[CancelToken],
        counter: _OutcomeCounter,
    ) -> None:
        """Apply one action and update the tally on success."""
        if file_diff.action == SyncAction.CREATE:
            self._copy(file_diff, source_root, destination, cancel, replace=False)
            counter.created += 1
            if file_diff.source is not None and not file_diff.source.is_dir:
                counter.bytes_transferred += file_diff.source.size

        elif file_diff.action == SyncAction.UPDATE:
            self._copy(file_diff, source_root, destination, cancel, replace=True)
            counter.updated += 1
            if file_diff.source is not None and not file_diff.source.is_dir:
                counter.bytes_transferred += file_diff.source.size

        elif file_diff.action == SyncAction.DELETE:
            destination.delete(file_diff.path)
            counter.deleted += 1

    def _copy(
        self,
        file_diff: FileDiff,
        source_root: Path,
        destination: DestinationStore,
        cancel: Optional[CancelToken],
        replace: bool,
    ) -> None:
        """Create or replace one destination entry from the source."""
        source = file_diff.source
        if source is None:
            raise ValueError("no source file info")

        if source.is_dir:
            destination.make_dirs(file_diff.path)
            return

        src_path = source_root.joinpath(*file_diff.path.split("/"))
        with open(src_path, "rb") as stream:
            if replace:
                logger.debug("Replacing %s", file_diff.path)
                destination.replace_file(
                    file_diff.path, stream, source.size, cancel, source.mtime
                )
            else:
                logger.debug("Creating %s", file_diff.path)
                destination.write_file(
                    file_diff.path, stream, source.size, cancel, source.mtime
                )
