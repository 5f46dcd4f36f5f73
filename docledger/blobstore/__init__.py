"""Content blob stores: local directory, Azure container, in-memory and nop."""

from __future__ import annotations

from docledger.blobstore.base import BlobInfo, BlobReader, BlobStore, BlobWriter
from docledger.blobstore.local import LocalBlobStore
from docledger.blobstore.nop import NopBlobStore
from docledger.blobstore.virtual import VirtualBlobStore
from docledger.errors import ConfigurationError
from docledger.models.config import BlobStoreConfig, BlobStoreKind

__all__ = [
    "BlobInfo",
    "BlobReader",
    "BlobStore",
    "BlobWriter",
    "LocalBlobStore",
    "NopBlobStore",
    "VirtualBlobStore",
    "new_blob_store",
]


def new_blob_store(config: BlobStoreConfig) -> BlobStore:
    """Build the blob store selected by ``config.kind``."""
    kind = config.kind
    if kind is BlobStoreKind.LOCAL:
        return LocalBlobStore(config.local.root_dir)
    if kind is BlobStoreKind.REMOTE:
        from docledger.blobstore.remote import RemoteBlobStore

        return RemoteBlobStore(config.remote)
    if kind is BlobStoreKind.VIRTUAL:
        return VirtualBlobStore()
    if kind is BlobStoreKind.NOP:
        return NopBlobStore()
    raise ConfigurationError(f"unknown blob store kind: {kind!r}")
