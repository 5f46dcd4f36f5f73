"""Blob store that keeps nothing; every read misses."""

from __future__ import annotations

from docledger.blobstore.base import BlobReader, BlobStore, BlobWriter, Visitor, clean_path
from docledger.errors import NotFoundError


class NopBlobWriter(BlobWriter):
    def write(self, data: bytes) -> int:
        return len(data)

    def sync(self) -> None:
        pass

    def close(self) -> None:
        pass


class NopBlobStore(BlobStore):
    def create(self, path: str) -> BlobWriter:
        clean_path(path)
        return NopBlobWriter()

    def open(self, path: str) -> BlobReader:
        raise NotFoundError(f"blob not found: {path}")

    def rename(self, old: str, new: str) -> None:
        raise NotFoundError(f"blob not found: {old}")

    def exists(self, path: str) -> bool:
        return False

    def remove(self, path: str) -> None:
        raise NotFoundError(f"blob not found: {path}")

    def walk(self, prefix: str, visit: Visitor) -> None:
        return None
