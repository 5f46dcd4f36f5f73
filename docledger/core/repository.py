"""Repository: ties the blob store and the metadata store into documents.

Content is written to the blob store first, keyed by its address; ledger
revisions pointing at it are written to the metadata store second. There is
no transaction spanning both stores: a metadata failure after a successful
blob write leaves an unreferenced blob behind, which is harmless because
blobs are content-addressed and never overwritten with different bytes.

Usage::

    repository = Repository(VirtualBlobStore(), VirtualMetadataStore())
    content = repository.put_content(Content.from_bytes(b"hello", "text/plain"))
    ledger = repository.insert_ledger(build_ledger(
        resource_id=new_identifier(),
        name="doc-1",
        author_id="alice",
        resource_address=content.address,
        resource_size=content.size,
        resource_content_type=content.content_type,
    ))
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from docledger.blobstore import new_blob_store
from docledger.blobstore.base import BlobStore
from docledger.config import ServiceSettings
from docledger.core.cancellation import CancelToken, check
from docledger.core.hasher import AddressEncoding, StreamingHasher, is_valid_address
from docledger.errors import (
    AddressMismatchError,
    DanglingReferenceError,
    InvalidInputError,
    NotFoundError,
    StoreError,
)
from docledger.metastore import new_metadata_store
from docledger.metastore.base import MetadataStore
from docledger.models.content import Content
from docledger.models.identifier import EMPTY_IDENTIFIER, new_identifier
from docledger.models.ledger import ZERO_TIME, Ledger, build_ledger
from docledger.models.query import EMPTY_QUERY, Query, Statistics

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _address_encoding(address: str) -> AddressEncoding:
    return "base64url" if is_valid_address(address, "base64url") else "hex"


class Repository:
    """Document operations over a blob store and a metadata store.

    Parameters
    ----------
    blobs:
        Where content payloads live, keyed by content address.
    ledgers:
        Where ledger revisions live.
    verify_references:
        When true, inserting a ledger whose ``resource_address`` has no
        stored blob raises :class:`DanglingReferenceError`.
    address_encoding:
        Encoding used for content addresses (``"hex"`` or ``"base64url"``).
    """

    def __init__(
        self,
        blobs: BlobStore,
        ledgers: MetadataStore,
        *,
        verify_references: bool = True,
        address_encoding: AddressEncoding = "hex",
    ) -> None:
        self._blobs = blobs
        self._ledgers = ledgers
        self._verify_references = verify_references
        self._encoding = address_encoding

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> Repository:
        """Build both stores from service settings."""
        blobs = new_blob_store(settings.blob_store_config())
        ledgers = new_metadata_store(settings.metadata_store_config())
        logger.info(
            "repository using %s blobs and %s metadata",
            settings.filesystem.value,
            settings.persistence.value,
        )
        return cls(
            blobs,
            ledgers,
            verify_references=settings.verify_references,
            address_encoding=settings.address_encoding,
        )

    @property
    def blobs(self) -> BlobStore:
        return self._blobs

    @property
    def ledgers(self) -> MetadataStore:
        return self._ledgers

    # ------------------------------------------------------------------
    # Ledger reads
    # ------------------------------------------------------------------

    def select_ledger(
        self, resource_id: str, query: Query = EMPTY_QUERY, *, cancel: CancelToken | None = None
    ) -> Ledger:
        """Latest revision of *resource_id* matching *query*."""
        check(cancel, "select ledger")
        return self._ledgers.select_latest(resource_id, query, cancel=cancel)

    def select_ledgers(
        self, resource_id: str, query: Query = EMPTY_QUERY, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        """All matching revisions of *resource_id*, newest first."""
        check(cancel, "select ledgers")
        return self._ledgers.select_revisions(resource_id, query, cancel=cancel)

    def select_fork_ledgers(
        self, resource_id: str, *, cancel: CancelToken | None = None
    ) -> list[Ledger]:
        """Latest revision of each chain forked from *resource_id*."""
        check(cancel, "select fork ledgers")
        return self._ledgers.select_fork_revisions(resource_id, cancel=cancel)

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------

    def insert_ledger(self, ledger: Ledger, *, cancel: CancelToken | None = None) -> Ledger:
        """Validate and store a revision.

        Raises
        ------
        InvalidInputError
            If the ledger fails validation.
        DanglingReferenceError
            If reference checking is on and the content blob is missing.
        """
        check(cancel, "insert ledger")
        ledger = build_ledger(**ledger.model_dump(exclude={"id"}))
        if ledger.resource_address and self._verify_references:
            if not self._blobs.exists(ledger.resource_address):
                raise DanglingReferenceError(
                    f"ledger references missing content {ledger.resource_address}"
                )
        if ledger.created_on == ZERO_TIME:
            ledger = ledger.model_copy(update={"created_on": datetime.now(timezone.utc)})
        stored = self._ledgers.insert(ledger, cancel=cancel)
        logger.info(
            "stored revision %s of %s (parent %s)",
            stored.id,
            stored.resource_id,
            stored.parent_id,
        )
        return stored

    def append_ledger(
        self, resource_id: str, ledger: Ledger, *, cancel: CancelToken | None = None
    ) -> Ledger:
        """Add a revision to an existing chain.

        Raises
        ------
        NotFoundError
            If *resource_id* has no prior revision.
        """
        check(cancel, "append ledger")
        parent = self._ledgers.select_latest(resource_id, EMPTY_QUERY, cancel=cancel)
        created_on = datetime.now(timezone.utc)
        if created_on <= parent.created_on:
            created_on = parent.created_on + _TICK
        child = ledger.model_copy(
            update={
                "resource_id": resource_id,
                "parent_id": parent.id,
                "created_on": created_on,
            }
        )
        return self.insert_ledger(child, cancel=cancel)

    def fork_ledger(
        self, resource_id: str, ledger: Ledger, *, cancel: CancelToken | None = None
    ) -> Ledger:
        """Start a new chain descending from the latest revision of *resource_id*.

        Raises
        ------
        NotFoundError
            If *resource_id* has no revision to fork from.
        """
        check(cancel, "fork ledger")
        source = self._ledgers.select_latest(resource_id, EMPTY_QUERY, cancel=cancel)
        fork_id = new_identifier()
        while fork_id == resource_id or fork_id == EMPTY_IDENTIFIER:
            fork_id = new_identifier()
        child = ledger.model_copy(
            update={
                "resource_id": fork_id,
                "parent_id": source.id,
                "created_on": ZERO_TIME,
            }
        )
        return self.insert_ledger(child, cancel=cancel)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def select_content(
        self, resource_id: str, query: Query = EMPTY_QUERY, *, cancel: CancelToken | None = None
    ) -> Content:
        """Payload of the latest matching revision of *resource_id*."""
        ledger = self.select_ledger(resource_id, query, cancel=cancel)
        if not ledger.has_content:
            raise NotFoundError(f"resource {resource_id} has no content")
        try:
            return self._open_content(ledger)
        except (NotFoundError, InvalidInputError) as exc:
            raise NotFoundError(f"content {ledger.resource_address} not found") from exc

    def select_contents(
        self, resource_id: str, query: Query = EMPTY_QUERY, *, cancel: CancelToken | None = None
    ) -> list[Content]:
        """Payloads of every matching revision; missing blobs are skipped."""
        contents = []
        for ledger in self.select_ledgers(resource_id, query, cancel=cancel):
            if not ledger.has_content:
                continue
            check(cancel, "select contents")
            try:
                contents.append(self._open_content(ledger))
            except (NotFoundError, InvalidInputError):
                logger.warning(
                    "revision %s references missing content %s",
                    ledger.id,
                    ledger.resource_address,
                )
        return contents

    def _open_content(self, ledger: Ledger) -> Content:
        reader = self._blobs.open(ledger.resource_address)
        return Content.from_reader(
            reader,
            size=reader.size(),
            content_type=ledger.resource_content_type or reader.content_type,
            address=ledger.resource_address,
        )

    def put_content(self, content: Content, *, cancel: CancelToken | None = None) -> Content:
        """Store a payload under its content address.

        Storing a payload that is already present is a no-op. A supplied
        address is checked in the encoding it is written in, so a hex address
        is accepted by a repository that stores under base64url and vice versa.

        Raises
        ------
        AddressMismatchError
            If the supplied address or size disagrees with the payload.
        """
        check(cancel, "put content")
        hasher = StreamingHasher(self._encoding)
        supplied = _address_encoding(content.address) if content.address else self._encoding
        verifier = StreamingHasher(supplied) if supplied != self._encoding else hasher
        buffer = bytearray()
        for chunk in content.chunks():
            hasher.update(chunk)
            if verifier is not hasher:
                verifier.update(chunk)
            buffer += chunk
        data = bytes(buffer)
        address = hasher.address()

        if content.address and content.address != verifier.address():
            raise AddressMismatchError(
                f"content address {content.address} does not match payload ({verifier.address()})"
            )
        if content.size and content.size != len(data):
            raise AddressMismatchError(
                f"content size {content.size} does not match payload ({len(data)} bytes)"
            )

        if self._blobs.exists(address):
            logger.debug("content %s already stored", address)
        else:
            check(cancel, "put content")
            with self._blobs.create(address) as writer:
                writer.set_content_type(content.content_type)
                writer.write(data)
                writer.sync()
            logger.info("stored content %s (%d bytes)", address, len(data))

        return Content.from_bytes(data, content.content_type, self._encoding)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def statistics(self) -> Statistics:
        return self._ledgers.statistics()

    def close(self) -> None:
        """Stop the metadata store and release both stores."""
        try:
            self._ledgers.stop()
            self._ledgers.close()
            self._blobs.close()
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError("unable to close repository") from exc
