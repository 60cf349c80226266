"""Destination backends for sync operations.

The syncer writes through a :class:`DestinationStore`. Two families ship:

- :class:`LocalStore` for a directory on local disk, with atomic replace.
- :class:`RemoteDestination`, which adapts any :class:`RemoteStore`
  (the capability set a network-share client provides) to the same
  interface. Remote backends cannot always rename atomically, so updates
  are best effort and fall back to overwriting.

:class:`NullRemoteStore` is a stand-in that accepts every call and stores
nothing; replace it with a real protocol client in production.
"""

import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union, cast
from urllib.parse import unquote, urlsplit

from ..exceptions import ConfigError
from .cancel import CancelToken
from .operations import atomic_write, remove_tree
from .scanner import LocalWalker, Walker

logger = logging.getLogger(__name__)


class DestinationStore(ABC):
    """Write access to a destination tree, addressed by relative paths."""

    @abstractmethod
    def walker(self, cancel: Optional[CancelToken] = None) -> Optional[Walker]:
        """Return a walker over the destination, or None if it cannot be listed.

        None means the destination is treated as empty.
        """

    @abstractmethod
    def make_dirs(self, path: str) -> None:
        """Create a directory and any missing parents."""

    @abstractmethod
    def write_file(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        cancel: Optional[CancelToken] = None,
        mtime: Optional[float] = None,
    ) -> None:
        """Write a new file, creating parent directories as needed."""

    @abstractmethod
    def replace_file(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        cancel: Optional[CancelToken] = None,
        mtime: Optional[float] = None,
    ) -> None:
        """Replace an existing file without exposing partial content."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete a file or a directory with its contents."""


class LocalStore(DestinationStore):
    """Destination directory on the local filesystem."""

    def __init__(self, root: Union[str, Path], preserve_times: bool = True):
        """Initialize local store.

        Args:
            root: Destination root directory
            preserve_times: Copy source modification times onto written files
        """
        self.root = Path(root)
        self.preserve_times = preserve_times

    def __str__(self) -> str:
        return str(self.root)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*path.split("/"))

    def walker(self, cancel: Optional[CancelToken] = None) -> Optional[Walker]:
        # A destination that does not exist yet is empty, not unreadable
        if not self.root.exists():
            logger.debug("Destination %s does not exist yet", self.root)
            return None
        return LocalWalker(self.root, cancel=cancel)

    def make_dirs(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def write_file(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        cancel: Optional[CancelToken] = None,
        mtime: Optional[float] = None,
    ) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(target, stream, cancel, mtime if self.preserve_times else None)

    def replace_file(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        cancel: Optional[CancelToken] = None,
        mtime: Optional[float] = None,
    ) -> None:
        target = self._resolve(path)
        mode = target.stat().st_mode & 0o777 if target.exists() else 0o644
        atomic_write(
            target,
            stream,
            cancel,
            mtime if self.preserve_times else None,
            mode=mode,
        )

    def delete(self, path: str) -> None:
        remove_tree(self._resolve(path))


class RemoteStore(ABC):
    """Capability set of a remote network-share client.

    Connection lifecycle belongs to the caller; the sync core only uses
    ``walk_remote_tree``, ``upload``, ``delete`` and ``make_directory_tree``.
    Paths are slash-separated and absolute within the share.
    """

    @abstractmethod
    def connect(self) -> None:
        """Establish the connection. Must be called before other operations."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection."""

    @abstractmethod
    def walk_remote_tree(self, path: str) -> Optional[Walker]:
        """Return a walker over ``path``, or None if listing is unsupported."""

    @abstractmethod
    def upload(self, path: str, stream: BinaryIO, size: int) -> None:
        """Write ``size`` bytes from ``stream`` to ``path``, overwriting."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove a file or directory tree."""

    @abstractmethod
    def make_directory_tree(self, path: str) -> None:
        """Create a directory and any missing parents."""


@dataclass
class RemoteConfig:
    """Connection parameters for a remote share."""

    host: str
    share: str
    port: int = 445
    username: str = ""
    password: str = ""
    domain: str = ""
    path: str = ""
    """Directory within the share that is the destination root"""

    @classmethod
    def from_url(cls, url: str) -> "RemoteConfig":
        """Parse ``smb://[domain;][user[:password]@]host[:port]/share[/path]``.

        Raises:
            ConfigError: If the URL is not a usable share address
        """
        parts = urlsplit(url)
        if parts.scheme != "smb":
            raise ConfigError(f"Unsupported remote scheme in {url!r}")
        if not parts.hostname:
            raise ConfigError(f"Missing host in {url!r}")

        segments = [unquote(s) for s in parts.path.split("/") if s]
        if not segments:
            raise ConfigError(f"Missing share name in {url!r}")

        username = unquote(parts.username or "")
        domain = ""
        if ";" in username:
            domain, username = username.split(";", 1)

        try:
            port = parts.port or 445
        except ValueError as e:
            raise ConfigError(f"Invalid port in {url!r}") from e

        return cls(
            host=parts.hostname,
            share=segments[0],
            port=port,
            username=username,
            password=unquote(parts.password or ""),
            domain=domain,
            path="/".join(segments[1:]),
        )


def is_remote_destination(destination: str) -> bool:
    """Whether a configured destination addresses a remote share."""
    return destination.startswith("smb://")


class NullRemoteStore(RemoteStore):
    """Remote store stand-in that accepts every call and stores nothing.

    ``walk_remote_tree`` returns None, so every run treats the destination
    as empty and copies everything.
    """

    def __init__(self, config: Optional[RemoteConfig] = None):
        self.config = config
        self.connected = False

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def walk_remote_tree(self, path: str) -> Optional[Walker]:
        return None

    def upload(self, path: str, stream: BinaryIO, size: int) -> None:
        logger.debug("Discarding upload of %d bytes to %s", size, path)

    def delete(self, path: str) -> None:
        logger.debug("Discarding delete of %s", path)

    def make_directory_tree(self, path: str) -> None:
        logger.debug("Discarding mkdir of %s", path)


class _CancellableReader:
    """Stream wrapper that checks a cancel token before every read."""

    def __init__(self, stream: BinaryIO, cancel: Optional[CancelToken]):
        self._stream = stream
        self._cancel = cancel

    def read(self, size: int = -1) -> bytes:
        if self._cancel is not None:
            self._cancel.raise_if_cancelled()
        return self._stream.read(size)


class RemoteDestination(DestinationStore):
    """Adapts a RemoteStore to the DestinationStore interface.

    Updates are uploaded over the existing file: remote backends are not
    guaranteed to offer an atomic rename, so a failed update may leave the
    remote file partially written.
    """

    def __init__(self, store: RemoteStore, root: str = ""):
        """Initialize remote destination.

        Args:
            store: Remote store client
            root: Destination directory within the share
        """
        self.store = store
        self.root = root.strip("/")

    def __str__(self) -> str:
        return f"remote:/{self.root}"

    def _remote_path(self, path: str) -> str:
        return posixpath.join("/", self.root, path)

    def walker(self, cancel: Optional[CancelToken] = None) -> Optional[Walker]:
        return self.store.walk_remote_tree(posixpath.join("/", self.root))

    def make_dirs(self, path: str) -> None:
        self.store.make_directory_tree(self._remote_path(path))

    def write_file(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        cancel: Optional[CancelToken] = None,
        mtime: Optional[float] = None,
    ) -> None:
        remote_path = self._remote_path(path)
        self.store.make_directory_tree(posixpath.dirname(remote_path))
        reader = cast(BinaryIO, _CancellableReader(stream, cancel))
        self.store.upload(remote_path, reader, size)

    def replace_file(
        self,
        path: str,
        stream: BinaryIO,
        size: int,
        cancel: Optional[CancelToken] = None,
        mtime: Optional[float] = None,
    ) -> None:
        reader = cast(BinaryIO, _CancellableReader(stream, cancel))
        self.store.upload(self._remote_path(path), reader, size)

    def delete(self, path: str) -> None:
        self.store.delete(self._remote_path(path))
