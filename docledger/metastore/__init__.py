"""Ledger revision stores: relational (SQLAlchemy), in-memory and nop."""

from __future__ import annotations

from docledger.errors import ConfigurationError
from docledger.metastore.base import MetadataStore, StoreState
from docledger.metastore.nop import NopMetadataStore
from docledger.metastore.real import SQLMetadataStore
from docledger.metastore.virtual import VirtualMetadataStore
from docledger.models.config import MetadataStoreConfig, MetadataStoreKind

__all__ = [
    "MetadataStore",
    "NopMetadataStore",
    "SQLMetadataStore",
    "StoreState",
    "VirtualMetadataStore",
    "new_metadata_store",
]


def new_metadata_store(config: MetadataStoreConfig) -> MetadataStore:
    """Build the metadata store selected by ``config.kind``."""
    kind = config.kind
    if kind is MetadataStoreKind.REAL:
        return SQLMetadataStore.from_config(config.sql)
    if kind is MetadataStoreKind.VIRTUAL:
        return VirtualMetadataStore(ping_interval=config.sql.ping_interval)
    if kind is MetadataStoreKind.NOP:
        return NopMetadataStore()
    raise ConfigurationError(f"unknown metadata store kind: {kind!r}")
