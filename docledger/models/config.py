"""Subsystem configuration models for the blob and metadata stores.

These are built by folding :class:`~docledger.core.options.Option` records
(see :func:`docledger.core.options.build_config`); the service settings in
:mod:`docledger.config` produce the options from the environment.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docledger.models.ledger import is_valid_mime_type

SSLMode = Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]

REMOTE_DEFAULT_CONTENT_TYPE = "text/plain; charset=utf-8"


class BlobStoreKind(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    VIRTUAL = "virtual"
    NOP = "nop"


class MetadataStoreKind(str, Enum):
    REAL = "real"
    VIRTUAL = "virtual"
    NOP = "nop"


class LocalBlobConfig(BaseModel):
    """Blobs stored as files under ``root_dir``."""

    model_config = ConfigDict(frozen=True)
    option_kinds: ClassVar[frozenset[str]] = frozenset({"root_dir"})

    root_dir: Path = Path(".docledger/blobs")

    @field_validator("root_dir")
    @classmethod
    def _non_empty(cls, value: Path) -> Path:
        if str(value).strip() in ("", "."):
            raise ValueError("root directory must be set")
        return value


class RemoteBlobConfig(BaseModel):
    """Blobs stored in an Azure Blob Storage container.

    Either ``connection_string`` or ``account_url`` must be set when the
    store is constructed; ``credential`` accompanies ``account_url``.
    """

    model_config = ConfigDict(frozen=True)
    option_kinds: ClassVar[frozenset[str]] = frozenset(
        {"bucket", "account_url", "connection_string", "credentials", "content_type"}
    )

    bucket: str = ""
    account_url: str = ""
    connection_string: str = ""
    credential: str = ""
    content_type: str = REMOTE_DEFAULT_CONTENT_TYPE

    @field_validator("content_type")
    @classmethod
    def _mime(cls, value: str) -> str:
        if not is_valid_mime_type(value):
            raise ValueError(f"invalid content type: {value!r}")
        return value


class BlobStoreConfig(BaseModel):
    """Which blob store to build, plus the settings for that variant."""

    model_config = ConfigDict(frozen=True)
    option_kinds: ClassVar[frozenset[str]] = frozenset({"backend_kind", "local", "remote"})

    kind: BlobStoreKind = BlobStoreKind.LOCAL
    local: LocalBlobConfig = Field(default_factory=LocalBlobConfig)
    remote: RemoteBlobConfig = Field(default_factory=RemoteBlobConfig)


class SQLStoreConfig(BaseModel):
    """Connection settings for the relational metadata store.

    ``url`` wins over the discrete fields when set. The ``postgresql``
    driver connects through psycopg; ``sqlite`` uses ``db_name`` as the
    database path (``":memory:"`` for an in-process database).
    """

    model_config = ConfigDict(frozen=True)
    option_kinds: ClassVar[frozenset[str]] = frozenset(
        {"driver", "host_port", "credentials", "db_name", "ssl_mode", "url"}
    )

    driver: Literal["postgresql", "sqlite"] = "postgresql"
    host: str = "localhost"
    port: int = Field(default=54321, ge=1, le=65535)
    username: str = "postgres"
    password: str = "postgres"
    db_name: str = "postgres"
    ssl_mode: SSLMode = "disable"
    url: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: float = 30.0
    connect_timeout: int = 10
    ping_interval: float = 60.0

    @field_validator("host", "db_name")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class MetadataStoreConfig(BaseModel):
    """Which metadata store to build, plus its SQL settings."""

    model_config = ConfigDict(frozen=True)
    option_kinds: ClassVar[frozenset[str]] = frozenset({"backend_kind", "sql"})

    kind: MetadataStoreKind = MetadataStoreKind.REAL
    sql: SQLStoreConfig = Field(default_factory=SQLStoreConfig)
