"""Content: an addressed payload plus its metadata.

The byte stream behind a :class:`Content` is consumed at most once; reading
it a second time raises :class:`ContentConsumedError`. Callers that need to
reuse a payload build a fresh ``Content`` with :meth:`Content.from_bytes`.
"""

from __future__ import annotations

import io
import threading
from collections.abc import Iterator
from typing import BinaryIO

from pydantic import BaseModel, ConfigDict

from docledger.core.hasher import AddressEncoding, content_address
from docledger.errors import ContentConsumedError, InvalidInputError
from docledger.models.ledger import is_valid_mime_type

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ContentDescriptor(BaseModel):
    """The JSON shape returned for stored content."""

    model_config = ConfigDict(frozen=True)

    address: str
    size: int
    content_type: str


class Content:
    """A payload with its address, size and MIME type.

    Parameters
    ----------
    address:
        SHA-256 content address, or ``""`` when not yet known.
    size:
        Declared payload length in bytes.
    content_type:
        Well-formed MIME type.
    reader:
        Binary stream yielding the payload, or ``None`` for metadata-only
        content.
    """

    def __init__(
        self,
        address: str,
        size: int,
        content_type: str,
        reader: BinaryIO | None = None,
    ) -> None:
        if size < 0:
            raise InvalidInputError("content size must be non-negative")
        if not is_valid_mime_type(content_type):
            raise InvalidInputError(f"invalid content type: {content_type!r}")
        self.address = address
        self.size = size
        self.content_type = content_type
        self._reader = reader
        self._consumed = False
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        encoding: AddressEncoding = "hex",
    ) -> Content:
        """Eager construction: size and address are computed immediately."""
        return cls(
            address=content_address(data, encoding),
            size=len(data),
            content_type=content_type,
            reader=io.BytesIO(data),
        )

    @classmethod
    def from_reader(
        cls,
        reader: BinaryIO,
        size: int,
        content_type: str = DEFAULT_CONTENT_TYPE,
        address: str = "",
    ) -> Content:
        """Lazy construction over a stream; the address may be supplied."""
        return cls(address=address, size=size, content_type=content_type, reader=reader)

    @classmethod
    def from_metadata(cls, address: str, size: int, content_type: str) -> Content:
        """Metadata only; :meth:`bytes` raises because there is no payload."""
        content = cls(address=address, size=size, content_type=content_type)
        content._consumed = True
        return content

    # ------------------------------------------------------------------
    # Payload
    # ------------------------------------------------------------------

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _take(self) -> BinaryIO:
        with self._lock:
            if self._consumed or self._reader is None:
                raise ContentConsumedError("content stream already consumed")
            self._consumed = True
            reader, self._reader = self._reader, None
        return reader

    def bytes(self) -> bytes:
        """Read the whole payload. Only the first read of any kind succeeds."""
        reader = self._take()
        try:
            return reader.read()
        finally:
            reader.close()

    def chunks(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Stream the payload in pieces; consumes the content like :meth:`bytes`."""
        reader = self._take()

        def _iterate() -> Iterator[bytes]:
            try:
                while True:
                    chunk = reader.read(chunk_size)
                    if not chunk:
                        return
                    yield chunk
            finally:
                reader.close()

        return _iterate()

    def close(self) -> None:
        """Release an unread payload stream."""
        with self._lock:
            reader, self._reader = self._reader, None
            self._consumed = True
        if reader is not None:
            reader.close()

    def descriptor(self) -> ContentDescriptor:
        return ContentDescriptor(
            address=self.address, size=self.size, content_type=self.content_type
        )

    def __repr__(self) -> str:
        return (
            f"Content(address={self.address!r}, size={self.size}, "
            f"content_type={self.content_type!r})"
        )
