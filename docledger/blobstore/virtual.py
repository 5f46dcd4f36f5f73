"""In-memory blob store for tests and throwaway deployments."""

from __future__ import annotations

import io
import threading
from datetime import datetime, timezone

from docledger.blobstore.base import (
    DEFAULT_BLOB_CONTENT_TYPE,
    BlobInfo,
    BlobReader,
    BlobStore,
    BlobWriter,
    Visitor,
    clean_path,
)
from docledger.errors import InvalidInputError, NotFoundError


class _Entry:
    __slots__ = ("data", "content_type", "modified_on")

    def __init__(self, data: bytes, content_type: str) -> None:
        self.data = data
        self.content_type = content_type
        self.modified_on = datetime.now(timezone.utc)


class VirtualBlobWriter(BlobWriter):
    def __init__(self, store: VirtualBlobStore, path: str) -> None:
        self._store = store
        self._path = path
        self._buffer = io.BytesIO()
        self._content_type = DEFAULT_BLOB_CONTENT_TYPE

    def write(self, data: bytes) -> int:
        return self._buffer.write(data)

    def set_content_type(self, content_type: str) -> None:
        self._content_type = content_type

    def sync(self) -> None:
        self._store._commit(self._path, self._buffer.getvalue(), self._content_type)

    def close(self) -> None:
        self._buffer.close()


class VirtualBlobReader(BlobReader):
    def __init__(self, entry: _Entry) -> None:
        self._stream = io.BytesIO(entry.data)
        self._size = len(entry.data)
        self._content_type = entry.content_type

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    def size(self) -> int:
        return self._size

    @property
    def content_type(self) -> str:
        return self._content_type


class VirtualBlobStore(BlobStore):
    """Blobs held in a dict guarded by a lock."""

    def __init__(self) -> None:
        self._blobs: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _commit(self, path: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self._blobs[path] = _Entry(data, content_type)

    def create(self, path: str) -> BlobWriter:
        key = clean_path(path)
        with self._lock:
            if key in self._blobs:
                self._blobs[key] = _Entry(b"", self._blobs[key].content_type)
        return VirtualBlobWriter(self, key)

    def open(self, path: str) -> BlobReader:
        key = clean_path(path)
        with self._lock:
            entry = self._blobs.get(key)
        if entry is None:
            raise NotFoundError(f"blob not found: {path}")
        return VirtualBlobReader(entry)

    def rename(self, old: str, new: str) -> None:
        source, target = clean_path(old), clean_path(new)
        with self._lock:
            if source not in self._blobs:
                raise NotFoundError(f"blob not found: {old}")
            self._blobs[target] = self._blobs.pop(source)

    def exists(self, path: str) -> bool:
        try:
            key = clean_path(path)
        except InvalidInputError:
            return False
        with self._lock:
            return key in self._blobs

    def remove(self, path: str) -> None:
        key = clean_path(path)
        with self._lock:
            if self._blobs.pop(key, None) is None:
                raise NotFoundError(f"blob not found: {path}")

    def walk(self, prefix: str, visit: Visitor) -> None:
        start = prefix.strip("/")
        with self._lock:
            snapshot = list(self._blobs.items())
        for path, entry in snapshot:
            if not path.startswith(start):
                continue
            info = BlobInfo(
                path=path,
                size=len(entry.data),
                content_type=entry.content_type,
                modified_on=entry.modified_on,
            )
            result = visit(path, info, None)
            if result is not None:
                raise result

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
