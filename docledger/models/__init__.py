"""docledger data models — Pydantic v2, frozen (immutable)."""

from docledger.models.config import (
    BlobStoreConfig,
    BlobStoreKind,
    LocalBlobConfig,
    MetadataStoreConfig,
    MetadataStoreKind,
    RemoteBlobConfig,
    SQLStoreConfig,
)
from docledger.models.content import Content, ContentDescriptor
from docledger.models.identifier import (
    EMPTY_IDENTIFIER,
    Identifier,
    new_identifier,
    parse_identifier,
)
from docledger.models.ledger import ZERO_TIME, Ledger, LedgerInput, build_ledger
from docledger.models.query import EMPTY_QUERY, Query, Statistics, build_query

__all__ = [
    "BlobStoreConfig",
    "BlobStoreKind",
    "Content",
    "ContentDescriptor",
    "EMPTY_IDENTIFIER",
    "EMPTY_QUERY",
    "Identifier",
    "Ledger",
    "LedgerInput",
    "LocalBlobConfig",
    "MetadataStoreConfig",
    "MetadataStoreKind",
    "Query",
    "RemoteBlobConfig",
    "SQLStoreConfig",
    "Statistics",
    "ZERO_TIME",
    "build_ledger",
    "build_query",
    "new_identifier",
    "parse_identifier",
]
