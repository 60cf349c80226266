"""Low-level file operations used by the destination stores."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from ..utils import DEFAULT_BUFFER_SIZE, TEMP_FILE_PREFIX
from .cancel import CancelToken

logger = logging.getLogger(__name__)


def copy_stream(
    src: BinaryIO,
    dst: BinaryIO,
    cancel: Optional[CancelToken] = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    """Copy a byte stream in chunks, checking for cancellation between chunks.

    Args:
        src: Readable binary stream
        dst: Writable binary stream
        cancel: Optional cancellation token
        buffer_size: Chunk size in bytes

    Returns:
        Number of bytes copied
    """
    copied = 0
    while True:
        if cancel is not None:
            cancel.raise_if_cancelled()
        chunk = src.read(buffer_size)
        if not chunk:
            break
        dst.write(chunk)
        copied += len(chunk)
    return copied


def atomic_write(
    target: Path,
    stream: BinaryIO,
    cancel: Optional[CancelToken] = None,
    mtime: Optional[float] = None,
    mode: int = 0o644,
) -> int:
    """Write a stream to ``target`` so readers never see a partial file.

    The content goes to a temporary file in the target's own directory
    (same volume, so the final move is a rename) and then replaces the
    target in one step. If anything fails, including cancellation, the
    temporary file is removed and the target is left as it was.

    Args:
        target: Final destination path
        stream: Readable binary stream with the new content
        cancel: Optional cancellation token checked between chunks
        mtime: Optional modification time to set on the written file
        mode: Permission bits for the written file

    Returns:
        Number of bytes written
    """
    fd, tmp_name = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, dir=target.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            written = copy_stream(stream, tmp_file, cancel)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.chmod(tmp_path, mode)
        if mtime is not None:
            os.utime(tmp_path, (mtime, mtime))
        os.replace(tmp_path, target)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise
    return written


def remove_tree(target: Path) -> None:
    """Remove a file or a directory with its contents.

    A missing target is not an error.
    """
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug("Nothing to delete at %s", target)
