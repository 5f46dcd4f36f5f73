"""Cooperative cancellation for repository and store operations."""

from __future__ import annotations

import threading
import time

from docledger.errors import CancelledError


class CancelToken:
    """A cancellation signal with an optional deadline.

    Operations check the token at their boundaries and before committing;
    a cancelled insert rolls back.

    Parameters
    ----------
    timeout:
        Seconds from construction after which the token counts as cancelled.
        ``None`` means no deadline.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        if self.cancelled:
            raise CancelledError(f"{operation} cancelled")


def check(cancel: CancelToken | None, operation: str) -> None:
    """Raise :class:`CancelledError` if *cancel* is set; ``None`` never cancels."""
    if cancel is not None:
        cancel.raise_if_cancelled(operation)
