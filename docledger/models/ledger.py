"""Ledger revisions: immutable metadata records pointing at stored content.

A chain of revisions shares a ``resource_id``. Each non-initial revision
links to its predecessor via ``parent_id``; a fork starts a new chain whose
first revision's ``parent_id`` lies in another chain.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

from docledger.errors import InvalidInputError
from docledger.models.identifier import EMPTY_IDENTIFIER, Identifier

# Sentinel for an unset creation time and for live (not deleted) revisions.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TOKEN = r"[A-Za-z0-9!#$&^_.+-]+"
_MIME = re.compile(
    rf"{_TOKEN}/{_TOKEN}(\s*;\s*{_TOKEN}=(\"[^\"]*\"|{_TOKEN}))*\s*"
)


def is_valid_mime_type(value: str) -> bool:
    """Whether *value* is a well-formed ``type/subtype[; param=value]`` string."""
    return _MIME.fullmatch(value) is not None


def normalize_tags(tags: Iterable[str] | None) -> tuple[str, ...]:
    """Deduplicate and sort tags ascending."""
    if tags is None:
        return ()
    return tuple(sorted(set(tags)))


def utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """RFC 3339 at second precision with a ``Z`` suffix."""
    return utc(value).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class Ledger(BaseModel):
    """A single revision in a document's history.

    Equality and hashing ignore ``id``: two revisions with identical content
    fields compare equal regardless of which row the store assigned them.
    """

    model_config = ConfigDict(frozen=True)

    id: Identifier = EMPTY_IDENTIFIER
    parent_id: Identifier = EMPTY_IDENTIFIER
    resource_id: Identifier
    name: str
    author_id: str
    resource_address: str = ""
    resource_size: int = Field(default=0, ge=0)
    resource_content_type: str = ""
    tags: tuple[str, ...] = ()
    created_on: datetime = ZERO_TIME
    deleted_on: datetime = ZERO_TIME

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> tuple[str, ...]:
        return normalize_tags(value)

    @field_validator("created_on", "deleted_on")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return utc(value)

    @field_serializer("created_on", "deleted_on", when_used="json")
    def _serialize_time(self, value: datetime) -> str:
        return format_timestamp(value)

    @field_serializer("tags")
    def _serialize_tags(self, value: tuple[str, ...]) -> list[str]:
        return list(value)

    def _identity(self) -> tuple[Any, ...]:
        return (
            self.parent_id,
            self.resource_id,
            self.name,
            self.author_id,
            self.resource_address,
            self.resource_size,
            self.resource_content_type,
            self.tags,
            self.created_on,
            self.deleted_on,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ledger):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    @property
    def is_deleted(self) -> bool:
        return self.deleted_on != ZERO_TIME

    @property
    def has_content(self) -> bool:
        return self.resource_address != ""


class LedgerInput(BaseModel):
    """The client-supplied body of a ledger write."""

    model_config = ConfigDict(frozen=True)

    name: str
    author_id: str
    tags: list[str] = Field(default_factory=list)
    resource_address: str = ""
    resource_size: int = 0
    resource_content_type: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_ledger(self, resource_id: str, **overrides: Any) -> Ledger:
        fields = self.model_dump()
        fields.update(overrides)
        return build_ledger(resource_id=resource_id, **fields)


def build_ledger(**fields: Any) -> Ledger:
    """Construct a validated :class:`Ledger`.

    Raises
    ------
    InvalidInputError
        If ``name`` or ``author_id`` is blank, ``resource_id`` is missing,
        empty or malformed, or the content type is not a MIME type.
    """
    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError("missing name")
    author_id = fields.get("author_id")
    if not isinstance(author_id, str) or not author_id.strip():
        raise InvalidInputError("missing author_id")
    resource_id = fields.get("resource_id")
    if not resource_id or resource_id == EMPTY_IDENTIFIER:
        raise InvalidInputError("missing resource_id")
    content_type = fields.get("resource_content_type", "")
    if content_type and not is_valid_mime_type(content_type):
        raise InvalidInputError(f"invalid content type: {content_type!r}")
    try:
        return Ledger(**fields)
    except ValidationError as exc:
        raise InvalidInputError(f"invalid ledger: {exc.errors()[0]['msg']}") from exc
