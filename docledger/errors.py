"""Error taxonomy shared by every layer of the document repository.

Each error carries an :class:`ErrorKind` and the HTTP status the service
layer answers with. Layers add a short context message and chain the cause
with ``raise ... from exc``; nothing below the HTTP layer knows about
responses.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    INVALID_INPUT = "invalid_input"
    BAD_QUERY = "bad_query"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    ADDRESS_MISMATCH = "address_mismatch"
    DANGLING_REFERENCE = "dangling_reference"
    STORE = "store"
    CANCELLED = "cancelled"


class DocLedgerError(RuntimeError):
    """Root of every error raised by docledger."""

    kind: ErrorKind = ErrorKind.STORE
    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.kind.value)
        self.message = message or str(self.args[0])


class InvalidInputError(DocLedgerError):
    """Malformed identifier, missing required field or bad MIME type."""

    kind = ErrorKind.INVALID_INPUT
    status_code = 400


class BadQueryError(InvalidInputError):
    """Query parameters could not be parsed."""

    kind = ErrorKind.BAD_QUERY


class ConfigurationError(InvalidInputError):
    """A configuration option was rejected."""


class ContentConsumedError(InvalidInputError):
    """The content stream has already been read."""


class NotFoundError(DocLedgerError):
    """No ledger or blob matches the request."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(DocLedgerError):
    """A revision with the same resource and creation time already exists."""

    kind = ErrorKind.CONFLICT
    status_code = 409


class AddressMismatchError(DocLedgerError):
    """Supplied content address or size does not match the payload."""

    kind = ErrorKind.ADDRESS_MISMATCH
    status_code = 400


class DanglingReferenceError(DocLedgerError):
    """A ledger references a content address with no stored blob."""

    kind = ErrorKind.DANGLING_REFERENCE
    status_code = 500


class StoreError(DocLedgerError):
    """Underlying database, filesystem or network failure."""

    kind = ErrorKind.STORE
    status_code = 500


class AlreadyRunningError(StoreError):
    """The metadata store lifecycle is already running."""


class CancelledError(DocLedgerError):
    """The caller cancelled the operation or its deadline passed."""

    kind = ErrorKind.CANCELLED
    status_code = 503
