"""SQLAlchemy table definition for ledger revisions.

Uses SQLAlchemy Core so the same statements run against PostgreSQL in
production and SQLite in development. ``tags`` is a ``TEXT[]`` on
PostgreSQL and a JSON array on SQLite.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY

metadata = MetaData()

TagArray = ARRAY(Text).with_variant(JSON(), "sqlite")

ledgers_table = Table(
    "ledgers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("parent_id", String(36), nullable=False),
    Column("resource_id", String(36), nullable=False),
    Column("name", Text, nullable=False),
    Column("author_id", Text, nullable=False),
    Column("tags", TagArray, nullable=False),
    Column("resource_address", String(64), nullable=False, default=""),
    Column("resource_size", BigInteger, nullable=False, default=0),
    Column("resource_content_type", Text, nullable=False, default=""),
    Column("created_on", DateTime(timezone=True), nullable=False),
    Column("deleted_on", DateTime(timezone=True), nullable=False),
    UniqueConstraint("resource_id", "created_on", name="uq_ledgers_resource_created"),
)

Index("ix_ledgers_resource_id", ledgers_table.c.resource_id)
Index("ix_ledgers_parent_id", ledgers_table.c.parent_id)
