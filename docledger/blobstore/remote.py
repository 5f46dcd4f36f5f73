"""Blob store backed by an Azure Blob Storage container.

Writes are buffered in memory and uploaded in one request on
:meth:`RemoteBlobWriter.sync`, carrying an explicit length and content type.
Rename is a server-side copy followed by a delete and is therefore not
atomic: a failure between the two steps leaves both blobs in place.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from docledger.blobstore.base import (
    BlobInfo,
    BlobReader,
    BlobStore,
    BlobWriter,
    Visitor,
    clean_path,
)
from docledger.errors import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    StoreError,
)
from docledger.models.config import RemoteBlobConfig

if TYPE_CHECKING:
    from azure.storage.blob import ContainerClient, StorageStreamDownloader

logger = logging.getLogger(__name__)


class RemoteBlobWriter(BlobWriter):
    def __init__(self, container: ContainerClient, path: str, content_type: str) -> None:
        self._container = container
        self._path = path
        self._content_type = content_type
        self._buffer = io.BytesIO()

    def write(self, data: bytes) -> int:
        return self._buffer.write(data)

    def set_content_type(self, content_type: str) -> None:
        self._content_type = content_type

    def sync(self) -> None:
        payload = self._buffer.getvalue()
        try:
            self._container.upload_blob(
                name=self._path,
                data=payload,
                length=len(payload),
                overwrite=True,
                content_settings=ContentSettings(content_type=self._content_type),
            )
        except AzureError as exc:
            raise StoreError(f"unable to upload blob {self._path!r}") from exc

    def close(self) -> None:
        self._buffer.close()


class RemoteBlobReader(BlobReader):
    def __init__(self, downloader: StorageStreamDownloader) -> None:
        self._size = downloader.size
        settings = downloader.properties.content_settings
        self._content_type = (settings.content_type if settings else None) or super().content_type
        self._chunks: Iterator[bytes] = iter(downloader.chunks())
        self._pending = b""

    def read(self, size: int = -1) -> bytes:
        try:
            if size is None or size < 0:
                data = self._pending + b"".join(self._chunks)
                self._pending = b""
                return data
            while len(self._pending) < size:
                chunk = next(self._chunks, b"")
                if not chunk:
                    break
                self._pending += chunk
        except AzureError as exc:
            raise StoreError("unable to read blob") from exc
        data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def size(self) -> int:
        return self._size

    @property
    def content_type(self) -> str:
        return self._content_type


class RemoteBlobStore(BlobStore):
    """Blobs in one Azure container.

    Parameters
    ----------
    config:
        Container name, connection details and the default upload
        content type.
    """

    def __init__(self, config: RemoteBlobConfig) -> None:
        if not config.bucket:
            raise ConfigurationError("remote blob store requires a bucket (container) name")
        if not config.connection_string and not config.account_url:
            raise ConfigurationError(
                "remote blob store requires a connection string or an account url"
            )
        self._config = config
        self._container = self._get_container_client()

    def _get_container_client(self) -> ContainerClient:
        """Create the Azure container client from the configured credentials."""
        config = self._config
        if config.connection_string:
            service = BlobServiceClient.from_connection_string(config.connection_string)
        else:
            service = BlobServiceClient(config.account_url, credential=config.credential or None)
        return service.get_container_client(config.bucket)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(self, path: str) -> BlobWriter:
        return RemoteBlobWriter(self._container, clean_path(path), self._config.content_type)

    def rename(self, old: str, new: str) -> None:
        source = self._container.get_blob_client(clean_path(old))
        target = self._container.get_blob_client(clean_path(new))
        try:
            if not source.exists():
                raise NotFoundError(f"blob not found: {old}")
            target.start_copy_from_url(source.url, requires_sync=True)
            source.delete_blob()
        except ResourceNotFoundError as exc:
            raise NotFoundError(f"blob not found: {old}") from exc
        except AzureError as exc:
            raise StoreError(f"unable to rename blob {old!r} to {new!r}") from exc

    def remove(self, path: str) -> None:
        try:
            self._container.delete_blob(clean_path(path))
        except ResourceNotFoundError as exc:
            raise NotFoundError(f"blob not found: {path}") from exc
        except AzureError as exc:
            raise StoreError(f"unable to remove blob {path!r}") from exc

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def open(self, path: str) -> BlobReader:
        try:
            downloader = self._container.download_blob(clean_path(path))
        except ResourceNotFoundError as exc:
            raise NotFoundError(f"blob not found: {path}") from exc
        except AzureError as exc:
            raise StoreError(f"unable to open blob {path!r}") from exc
        return RemoteBlobReader(downloader)

    def exists(self, path: str) -> bool:
        try:
            key = clean_path(path)
        except InvalidInputError:
            return False
        try:
            return bool(self._container.get_blob_client(key).exists())
        except AzureError as exc:
            raise StoreError(f"unable to check blob {path!r}") from exc

    def walk(self, prefix: str, visit: Visitor) -> None:
        start = prefix.strip("/") or None
        try:
            for props in self._container.list_blobs(name_starts_with=start):
                settings = props.content_settings
                info = BlobInfo(
                    path=props.name,
                    size=props.size or 0,
                    content_type=(settings.content_type if settings else None)
                    or "application/octet-stream",
                    modified_on=props.last_modified,
                )
                result = visit(props.name, info, None)
                if result is not None:
                    raise result
        except AzureError as exc:
            logger.warning("listing blobs under %r failed: %s", prefix, exc)
            result = visit(prefix, None, StoreError(f"unable to list blobs under {prefix!r}"))
            if result is not None:
                raise result from exc

    def close(self) -> None:
        self._container.close()
