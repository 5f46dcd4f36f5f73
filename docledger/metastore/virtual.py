"""In-memory metadata store with the same semantics as the SQL store."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from docledger.core.cancellation import CancelToken, check
from docledger.errors import ConflictError, NotFoundError
from docledger.metastore.base import MetadataStore
from docledger.models.identifier import new_identifier
from docledger.models.ledger import ZERO_TIME, Ledger
from docledger.models.query import Query, Statistics


def _newest_first(ledger: Ledger) -> tuple[float, str]:
    return (-ledger.created_on.timestamp(), ledger.id)


class VirtualMetadataStore(MetadataStore):
    """Revisions held in a list guarded by a lock."""

    def __init__(self, ping_interval: float = 60.0) -> None:
        super().__init__(ping_interval=ping_interval)
        self._rows: list[Ledger] = []
        self._lock = threading.Lock()

    def _matching(self, resource_id: str, query: Query) -> list[Ledger]:
        with self._lock:
            rows = [
                row
                for row in self._rows
                if row.resource_id == resource_id and query.matches(row.tags, row.author_id)
            ]
        return sorted(rows, key=_newest_first)

    def select_latest(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> Ledger:
        self._ensure_open()
        check(cancel, "select latest revision")
        rows = self._matching(resource_id, query)
        if not rows:
            raise NotFoundError(f"no revision for resource {resource_id}")
        return rows[0]

    def select_revisions(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        self._ensure_open()
        check(cancel, "select revisions")
        return self._matching(resource_id, query)

    def select_fork_revisions(
        self, resource_id: str, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        self._ensure_open()
        check(cancel, "select fork revisions")
        with self._lock:
            rows = list(self._rows)
        chain_ids = {row.id for row in rows if row.resource_id == resource_id}
        forks = {
            row.resource_id
            for row in rows
            if row.resource_id != resource_id and row.parent_id in chain_ids
        }
        latest: dict[str, Ledger] = {}
        for row in rows:
            if row.resource_id not in forks:
                continue
            current = latest.get(row.resource_id)
            if current is None or _newest_first(row) < _newest_first(current):
                latest[row.resource_id] = row
        return sorted(latest.values(), key=_newest_first)

    def insert(self, ledger: Ledger, *, cancel: CancelToken | None = None) -> Ledger:
        self._ensure_open()
        check(cancel, "insert revision")
        created_on = ledger.created_on
        if created_on == ZERO_TIME:
            created_on = datetime.now(timezone.utc)
        stored = ledger.model_copy(update={"id": new_identifier(), "created_on": created_on})
        with self._lock:
            for row in self._rows:
                if row.resource_id == stored.resource_id and row.created_on == created_on:
                    raise ConflictError(
                        f"revision of {stored.resource_id} at {created_on.isoformat()} already exists"
                    )
            check(cancel, "insert revision")
            self._rows.append(stored)
        return stored

    def statistics(self) -> Statistics:
        self._ensure_open()
        with self._lock:
            live = [row for row in self._rows if row.deleted_on == ZERO_TIME]
        return Statistics(
            total_revisions=len(live),
            distinct_resources=len({row.resource_id for row in live}),
            total_bytes=sum(row.resource_size for row in live),
        )

    def drop(self) -> None:
        self._ensure_open()
        with self._lock:
            self._rows.clear()
