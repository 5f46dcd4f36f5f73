"""Relational metadata store on SQLAlchemy Core.

PostgreSQL (via psycopg) in production, SQLite for development and tests.
Each operation is one logical statement; inserts run inside
``engine.begin()`` so any failure, cancellation included, rolls back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    URL,
    ColumnElement,
    Engine,
    Row,
    Select,
    and_,
    create_engine,
    distinct,
    event,
    exists,
    func,
    select,
    text,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from docledger.core.cancellation import CancelToken, check
from docledger.errors import ConflictError, NotFoundError, StoreError
from docledger.metastore.base import MetadataStore
from docledger.metastore.schema import ledgers_table, metadata
from docledger.models.config import SQLStoreConfig
from docledger.models.identifier import new_identifier
from docledger.models.ledger import ZERO_TIME, Ledger, utc
from docledger.models.query import Query, Statistics

logger = logging.getLogger(__name__)


def build_url(config: SQLStoreConfig) -> str | URL:
    """Connection URL for *config*; an explicit ``url`` wins."""
    if config.url:
        return config.url
    if config.driver == "sqlite":
        return f"sqlite:///{config.db_name}"
    return URL.create(
        "postgresql+psycopg",
        username=config.username,
        password=config.password,
        host=config.host,
        port=config.port,
        database=config.db_name,
    )


class SQLMetadataStore(MetadataStore):
    """Ledger revisions in a relational database.

    Parameters
    ----------
    engine:
        A configured SQLAlchemy engine. Tables are created if missing.
    ping_interval:
        Seconds between connectivity checks while :meth:`run` is active.
    """

    def __init__(self, engine: Engine, ping_interval: float = 60.0) -> None:
        super().__init__(ping_interval=ping_interval)
        self._engine = engine
        self._postgres = engine.dialect.name == "postgresql"
        if engine.dialect.name == "sqlite":
            self._configure_sqlite(engine)
        try:
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise StoreError("unable to create ledger schema") from exc

    @classmethod
    def from_config(cls, config: SQLStoreConfig) -> SQLMetadataStore:
        url = build_url(config)
        if str(url).startswith("sqlite"):
            if str(url) in ("sqlite://", "sqlite:///:memory:"):
                return cls.in_memory(ping_interval=config.ping_interval)
            engine = create_engine(url, connect_args={"check_same_thread": False})
        else:
            engine = create_engine(
                url,
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout,
                pool_pre_ping=True,
                connect_args={
                    "connect_timeout": config.connect_timeout,
                    "sslmode": config.ssl_mode,
                },
            )
        logger.info("metadata store connecting to %s", engine.url.render_as_string(hide_password=True))
        return cls(engine, ping_interval=config.ping_interval)

    @classmethod
    def in_memory(cls, ping_interval: float = 60.0) -> SQLMetadataStore:
        """An in-process SQLite database shared across threads."""
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        return cls(engine, ping_interval=ping_interval)

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    @property
    def engine(self) -> Engine:
        return self._engine

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def _tag_overlap(self, table: Any, tags: Iterable[str]) -> ColumnElement[bool]:
        values = sorted(tags)
        if self._postgres:
            return table.c.tags.overlap(values)
        each = func.json_each(table.c.tags).table_valued("value")
        return exists(select(1).select_from(each).where(each.c.value.in_(values)))

    def _filtered(self, resource_id: str, query: Query) -> Select[Any]:
        t = ledgers_table
        stmt = select(t).where(t.c.resource_id == resource_id)
        if query.tags:
            stmt = stmt.where(self._tag_overlap(t, query.tags))
        if query.author_id is not None:
            stmt = stmt.where(t.c.author_id == query.author_id)
        return stmt.order_by(t.c.created_on.desc(), t.c.id.asc())

    def _fetch(self, stmt: Select[Any], action: str) -> list[Ledger]:
        self._ensure_open()
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"unable to {action}") from exc
        return [_row_to_ledger(row) for row in rows]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def select_latest(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> Ledger:
        check(cancel, "select latest revision")
        found = self._fetch(self._filtered(resource_id, query).limit(1), "select latest revision")
        if not found:
            raise NotFoundError(f"no revision for resource {resource_id}")
        return found[0]

    def select_revisions(
        self, resource_id: str, query: Query, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        check(cancel, "select revisions")
        return self._fetch(self._filtered(resource_id, query), "select revisions")

    def select_fork_revisions(
        self, resource_id: str, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        check(cancel, "select fork revisions")
        t = ledgers_table
        chain = ledgers_table.alias("chain")
        fork = ledgers_table.alias("fork")
        latest_row = ledgers_table.alias("latest_row")

        chain_ids = select(chain.c.id).where(chain.c.resource_id == resource_id)
        fork_resources = (
            select(fork.c.resource_id)
            .where(fork.c.resource_id != resource_id)
            .where(fork.c.parent_id.in_(chain_ids))
        )
        latest = (
            select(
                latest_row.c.resource_id,
                func.max(latest_row.c.created_on).label("created_on"),
            )
            .where(latest_row.c.resource_id.in_(fork_resources))
            .group_by(latest_row.c.resource_id)
            .subquery("latest")
        )
        stmt = (
            select(t)
            .join(
                latest,
                and_(
                    t.c.resource_id == latest.c.resource_id,
                    t.c.created_on == latest.c.created_on,
                ),
            )
            .order_by(t.c.created_on.desc(), t.c.id.asc())
        )
        return self._fetch(stmt, "select fork revisions")

    def statistics(self) -> Statistics:
        self._ensure_open()
        t = ledgers_table
        stmt = select(
            func.count(),
            func.count(distinct(t.c.resource_id)),
            func.coalesce(func.sum(t.c.resource_size), 0),
        ).where(t.c.deleted_on == ZERO_TIME)
        try:
            with self._engine.connect() as conn:
                total, resources, size = conn.execute(stmt).one()
        except SQLAlchemyError as exc:
            raise StoreError("unable to compute statistics") from exc
        return Statistics(
            total_revisions=total, distinct_resources=resources, total_bytes=int(size)
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, ledger: Ledger, *, cancel: CancelToken | None = None) -> Ledger:
        self._ensure_open()
        check(cancel, "insert revision")
        created_on = ledger.created_on
        if created_on == ZERO_TIME:
            created_on = datetime.now(timezone.utc)
        stored = ledger.model_copy(update={"id": new_identifier(), "created_on": created_on})
        try:
            with self._engine.begin() as conn:
                conn.execute(ledgers_table.insert().values(**_ledger_to_row(stored)))
                check(cancel, "insert revision")
        except IntegrityError as exc:
            raise ConflictError(
                f"revision of {ledger.resource_id} at {created_on.isoformat()} already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise StoreError("unable to commit statement") from exc
        logger.debug("inserted revision %s of %s", stored.id, stored.resource_id)
        return stored

    def drop(self) -> None:
        self._ensure_open()
        try:
            with self._engine.begin() as conn:
                conn.execute(ledgers_table.delete())
        except SQLAlchemyError as exc:
            raise StoreError("unable to drop revisions") from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> None:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreError("database unreachable") from exc

    def close(self) -> None:
        self._engine.dispose()


def _ledger_to_row(ledger: Ledger) -> dict[str, Any]:
    return {
        "id": ledger.id,
        "parent_id": ledger.parent_id,
        "resource_id": ledger.resource_id,
        "name": ledger.name,
        "author_id": ledger.author_id,
        "tags": list(ledger.tags),
        "resource_address": ledger.resource_address,
        "resource_size": ledger.resource_size,
        "resource_content_type": ledger.resource_content_type,
        "created_on": ledger.created_on,
        "deleted_on": ledger.deleted_on,
    }


def _row_to_ledger(row: Row[Any]) -> Ledger:
    m = row._mapping
    return Ledger(
        id=m["id"],
        parent_id=m["parent_id"],
        resource_id=m["resource_id"],
        name=m["name"],
        author_id=m["author_id"],
        tags=m["tags"] or (),
        resource_address=m["resource_address"],
        resource_size=m["resource_size"],
        resource_content_type=m["resource_content_type"],
        created_on=utc(m["created_on"]),
        deleted_on=utc(m["deleted_on"]),
    )
