"""Metadata store capability set and run/stop lifecycle.

Lifecycle::

    IDLE --run()--> RUNNING --stop()--> STOPPED

``run()`` blocks the calling thread, pinging the backend periodically, until
``stop()`` posts an acknowledgement event through a queue and waits for the
loop to set it. ``stop()`` outside RUNNING is a no-op. Operations after
STOPPED raise :class:`StoreError`.
"""

from __future__ import annotations

import abc
import logging
import queue
import threading
from enum import Enum

from docledger.core.cancellation import CancelToken
from docledger.errors import AlreadyRunningError, StoreError
from docledger.models.ledger import Ledger
from docledger.models.query import Query, Statistics

logger = logging.getLogger(__name__)


class StoreState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class MetadataStore(abc.ABC):
    """Ledger revision persistence.

    Parameters
    ----------
    ping_interval:
        Seconds between connectivity checks while running.
    """

    def __init__(self, ping_interval: float = 60.0) -> None:
        self._ping_interval = ping_interval
        self._state = StoreState.IDLE
        self._state_lock = threading.Lock()
        self._stop_requests: queue.Queue[threading.Event] = queue.Queue()
        self._running = threading.Event()

    @property
    def state(self) -> StoreState:
        return self._state

    def _ensure_open(self) -> None:
        if self._state is StoreState.STOPPED:
            raise StoreError("metadata store is stopped")

    # ------------------------------------------------------------------
    # Queries and writes
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def select_latest(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> Ledger:
        """Latest matching revision; ``NotFoundError`` if none."""

    @abc.abstractmethod
    def insert(self, ledger: Ledger, *, cancel: CancelToken | None = None) -> Ledger:
        """Persist *ledger* with a fresh ``id`` and return the stored record."""

    @abc.abstractmethod
    def select_revisions(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        """Matching revisions, newest first, ties broken by ``id`` ascending."""

    @abc.abstractmethod
    def select_fork_revisions(
        self, resource_id: str, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        """Latest revision of every chain forked from *resource_id*'s chain."""

    @abc.abstractmethod
    def statistics(self) -> Statistics: ...

    @abc.abstractmethod
    def drop(self) -> None:
        """Remove every stored revision."""

    def ping(self) -> None:
        """Check backend connectivity; raise :class:`StoreError` on failure."""

    def close(self) -> None:
        """Release backend resources."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Block until :meth:`stop` is called, pinging the backend meanwhile."""
        with self._state_lock:
            if self._state is StoreState.RUNNING:
                raise AlreadyRunningError("metadata store is already running")
            if self._state is StoreState.STOPPED:
                raise StoreError("metadata store is stopped")
            self._state = StoreState.RUNNING
            self._running.set()
        logger.info("%s running", type(self).__name__)

        while True:
            try:
                ack = self._stop_requests.get(timeout=self._ping_interval)
            except queue.Empty:
                try:
                    self.ping()
                except StoreError as exc:
                    logger.warning("metadata store ping failed: %s", exc)
                continue
            with self._state_lock:
                self._state = StoreState.STOPPED
                pending = [ack]
                while not self._stop_requests.empty():
                    pending.append(self._stop_requests.get_nowait())
            self.close()
            for waiter in pending:
                waiter.set()
            logger.info("%s stopped", type(self).__name__)
            return

    def wait_running(self, timeout: float | None = None) -> bool:
        """Block until :meth:`run` has entered RUNNING; return whether it did."""
        return self._running.wait(timeout)

    def stop(self) -> None:
        """Ask a running store to stop and wait for acknowledgement."""
        with self._state_lock:
            if self._state is not StoreState.RUNNING:
                return
            ack = threading.Event()
            self._stop_requests.put(ack)
        ack.wait()
