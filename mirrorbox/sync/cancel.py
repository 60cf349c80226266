"""Cooperative cancellation tokens.

A token is either cancelled explicitly, cancelled because an ancestor was
cancelled, or expired because its deadline passed. Long-running code calls
:meth:`CancelToken.raise_if_cancelled` at its suspension points.
"""

import threading
import time
from typing import Optional

from ..exceptions import SyncCancelledError, SyncTimeoutError

# Slice used when waiting on a token that depends on a parent or deadline
_POLL_INTERVAL = 0.05


class CancelToken:
    """Cancellation signal that can be chained and bounded by a deadline.

    Examples:
        >>> root = CancelToken()
        >>> child = root.child(timeout=1800)
        >>> root.cancel()
        >>> child.cancelled
        True
    """

    def __init__(
        self,
        parent: Optional["CancelToken"] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize token.

        Args:
            parent: Token whose cancellation propagates to this one
            timeout: Seconds from now after which the token expires
        """
        self._event = threading.Event()
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def child(self, timeout: Optional[float] = None) -> "CancelToken":
        """Derive a token that is cancelled together with this one."""
        return CancelToken(parent=self, timeout=timeout)

    def cancel(self) -> None:
        """Signal cancellation to this token and all its children."""
        self._event.set()

    @property
    def expired(self) -> bool:
        """Whether this token or an ancestor ran past its deadline."""
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.expired

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.cancelled

    def error(self, outcome=None) -> SyncCancelledError:
        """Build the exception describing why this token fired."""
        if self.expired and not self._explicitly_cancelled():
            return SyncTimeoutError(outcome=outcome)
        return SyncCancelledError(outcome=outcome)

    def raise_if_cancelled(self, outcome=None) -> None:
        """Raise SyncCancelledError (or SyncTimeoutError) if cancelled."""
        if self.cancelled:
            raise self.error(outcome)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the token is cancelled or ``timeout`` elapses.

        Returns:
            True if the token is cancelled
        """
        if self._parent is None and self._deadline is None:
            return self._event.wait(timeout)

        end = time.monotonic() + timeout if timeout is not None else None
        while not self.cancelled:
            if end is not None:
                left = end - time.monotonic()
                if left <= 0:
                    return False
                self._event.wait(min(left, _POLL_INTERVAL))
            else:
                self._event.wait(_POLL_INTERVAL)
        return True

    def _explicitly_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent._explicitly_cancelled()
