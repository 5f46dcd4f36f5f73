"""Blob store capability set shared by every backend.

A blob store maps string paths to immutable byte payloads. Writers buffer
or stream data and commit on :meth:`BlobWriter.sync`; readers yield the
committed bytes. The repository keys blobs by their content address, so a
path is normally a 64-character hex digest.
"""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Callable, Iterator

from pydantic import BaseModel, ConfigDict

from docledger.errors import InvalidInputError

DEFAULT_BLOB_CONTENT_TYPE = "application/octet-stream"
CHUNK_SIZE = 64 * 1024


class BlobInfo(BaseModel):
    """What a walk reports about each blob."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: int
    content_type: str = DEFAULT_BLOB_CONTENT_TYPE
    modified_on: datetime | None = None


# visit(path, info, carry_error) -> exception to stop the walk, or None.
Visitor = Callable[[str, BlobInfo | None, Exception | None], Exception | None]


def clean_path(path: str) -> str:
    """Normalise a blob path and reject traversal outside the store root."""
    if not isinstance(path, str) or not path.strip():
        raise InvalidInputError("blob path must not be empty")
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or any(p == ".." for p in parts):
        raise InvalidInputError(f"invalid blob path: {path!r}")
    return "/".join(parts)


class BlobWriter(abc.ABC):
    """Handle returned by :meth:`BlobStore.create`."""

    @abc.abstractmethod
    def write(self, data: bytes) -> int: ...

    @abc.abstractmethod
    def sync(self) -> None:
        """Commit everything written so far."""

    @abc.abstractmethod
    def close(self) -> None: ...

    def set_content_type(self, content_type: str) -> None:
        """Backends without content metadata ignore this."""

    def __enter__(self) -> BlobWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class BlobReader(abc.ABC):
    """Handle returned by :meth:`BlobStore.open`."""

    @abc.abstractmethod
    def read(self, size: int = -1) -> bytes: ...

    @abc.abstractmethod
    def size(self) -> int: ...

    @property
    def content_type(self) -> str:
        return DEFAULT_BLOB_CONTENT_TYPE

    def close(self) -> None:
        pass

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    def __enter__(self) -> BlobReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class BlobStore(abc.ABC):
    """Common operations of the local, remote, virtual and nop stores."""

    @abc.abstractmethod
    def create(self, path: str) -> BlobWriter:
        """Open *path* for writing, truncating any existing blob."""

    @abc.abstractmethod
    def open(self, path: str) -> BlobReader:
        """Open *path* for reading; raises ``NotFoundError`` if absent."""

    @abc.abstractmethod
    def rename(self, old: str, new: str) -> None:
        """Move a blob; raises ``NotFoundError`` if *old* is absent."""

    @abc.abstractmethod
    def exists(self, path: str) -> bool: ...

    @abc.abstractmethod
    def remove(self, path: str) -> None:
        """Delete a blob; raises ``NotFoundError`` if absent."""

    @abc.abstractmethod
    def walk(self, prefix: str, visit: Visitor) -> None:
        """Call *visit* for every blob under *prefix*.

        Enumeration errors are handed to the visitor as ``carry_error``. If
        the visitor returns an exception the walk stops and that exception
        is raised.
        """

    def close(self) -> None:
        pass
