"""Blob store backed by a directory on the host filesystem.

Storage layout: ``{root_dir}/{path}``. Writes go to a temporary sibling and
are moved into place by :meth:`LocalBlobWriter.sync`, so a blob is either
absent or complete.
"""

from __future__ import annotations

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from docledger.blobstore.base import (
    BlobInfo,
    BlobReader,
    BlobStore,
    BlobWriter,
    Visitor,
    clean_path,
)
from docledger.errors import InvalidInputError, NotFoundError, StoreError

logger = logging.getLogger(__name__)


class LocalBlobWriter(BlobWriter):
    def __init__(self, target: Path) -> None:
        self._target = target
        self._staging = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        self._file = open(self._staging, "wb")
        self._synced = False

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def sync(self) -> None:
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        os.replace(self._staging, self._target)
        self._synced = True

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
        if not self._synced and self._staging.exists():
            self._staging.unlink()


class LocalBlobReader(BlobReader):
    def __init__(self, path: Path) -> None:
        self._size = path.stat().st_size
        self._file = open(path, "rb")

    def read(self, size: int = -1) -> bytes:
        return self._file.read(size)

    def size(self) -> int:
        return self._size

    def close(self) -> None:
        self._file.close()


class LocalBlobStore(BlobStore):
    """Blobs as files under a root directory.

    Parameters
    ----------
    root_dir:
        Directory holding the blobs. Created if it does not exist.
    """

    def __init__(self, root_dir: Path) -> None:
        self._root = Path(root_dir)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        return self._root / clean_path(path)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(self, path: str) -> BlobWriter:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            return LocalBlobWriter(target)
        except OSError as exc:
            raise StoreError(f"unable to create blob {path!r}") from exc

    def rename(self, old: str, new: str) -> None:
        source, target = self._resolve(old), self._resolve(new)
        if not source.is_file():
            raise NotFoundError(f"blob not found: {old}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, target)
        except OSError as exc:
            raise StoreError(f"unable to rename blob {old!r}") from exc

    def remove(self, path: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError(f"blob not found: {path}")
        try:
            target.unlink()
        except OSError as exc:
            raise StoreError(f"unable to remove blob {path!r}") from exc

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def open(self, path: str) -> BlobReader:
        target = self._resolve(path)
        try:
            return LocalBlobReader(target)
        except FileNotFoundError as exc:
            raise NotFoundError(f"blob not found: {path}") from exc
        except OSError as exc:
            raise StoreError(f"unable to open blob {path!r}") from exc

    def exists(self, path: str) -> bool:
        try:
            target = self._resolve(path)
        except InvalidInputError:
            return False
        return target.is_file()

    def walk(self, prefix: str, visit: Visitor) -> None:
        start = self._resolve(prefix) if prefix.strip("/") else self._root
        if not start.exists():
            return
        for dirpath, _dirnames, filenames in os.walk(start):
            for filename in filenames:
                if filename.startswith(".") and filename.endswith(".tmp"):
                    continue
                full = Path(dirpath) / filename
                relative = full.relative_to(self._root).as_posix()
                try:
                    stat = full.stat()
                except OSError as exc:
                    result = visit(relative, None, exc)
                else:
                    info = BlobInfo(
                        path=relative,
                        size=stat.st_size,
                        modified_on=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                    result = visit(relative, info, None)
                if result is not None:
                    logger.debug("walk of %s stopped at %s", prefix or "/", relative)
                    raise result
