"""Metadata store that persists nothing."""

from __future__ import annotations

from docledger.core.cancellation import CancelToken, check
from docledger.errors import NotFoundError
from docledger.metastore.base import MetadataStore
from docledger.models.identifier import new_identifier
from docledger.models.ledger import Ledger
from docledger.models.query import Query, Statistics


class NopMetadataStore(MetadataStore):
    """Accepts inserts and forgets them; every lookup misses."""

    def select_latest(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> Ledger:
        check(cancel, "select latest revision")
        raise NotFoundError(f"no revision for resource {resource_id}")

    def select_revisions(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        return []

    def select_fork_revisions(
        self, resource_id: str, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        return []

    def insert(self, ledger: Ledger, *, cancel: CancelToken | None = None) -> Ledger:
        check(cancel, "insert revision")
        return ledger.model_copy(update={"id": new_identifier()})

    def statistics(self) -> Statistics:
        return Statistics()

    def drop(self) -> None:
        pass
