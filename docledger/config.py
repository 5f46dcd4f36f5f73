"""Service configuration: env-driven settings for the document repository.

Centralized settings using pydantic-settings. Values come from ``.env`` and
``DOCLEDGER_*`` environment variables; the ``serve`` command overlays its
flags on top. The subsystem configs are produced through the option fold in
:mod:`docledger.core.options` so the same validation applies everywhere.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from docledger.core.hasher import AddressEncoding
from docledger.core.options import (
    Option,
    build_config,
    with_account_url,
    with_backend_kind,
    with_bucket,
    with_connection_string,
    with_content_type,
    with_credentials,
    with_db_name,
    with_driver,
    with_host_port,
    with_local,
    with_remote,
    with_root_dir,
    with_sql,
    with_ssl_mode,
    with_url,
)
from docledger.errors import ConfigurationError
from docledger.models.config import (
    REMOTE_DEFAULT_CONTENT_TYPE,
    BlobStoreConfig,
    BlobStoreKind,
    LocalBlobConfig,
    MetadataStoreConfig,
    MetadataStoreKind,
    RemoteBlobConfig,
    SQLStoreConfig,
)

MAX_CONTENT_BYTES = 5 * 1024 * 1024
MAX_JOURNAL_BYTES = 10 * 1024 * 1024


class ServiceSettings(BaseSettings):
    """Service settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DOCLEDGER_FILESYSTEM=remote
        export DOCLEDGER_REMOTE_BUCKET=documents
        export DOCLEDGER_DB_HOSTNAME=db.internal
        export DOCLEDGER_DB_SSLMODE=require

    Or via .env file::

        DOCLEDGER_PERSISTENCE=real
        DOCLEDGER_DB_DRIVER=sqlite
        DOCLEDGER_DB_NAME=.docledger/ledgers.db
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DOCLEDGER_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    log_level: str = "INFO"
    debug: bool = False
    api: str = "tcp://0.0.0.0:8080"

    # Backends
    filesystem: BlobStoreKind = BlobStoreKind.LOCAL
    persistence: MetadataStoreKind = MetadataStoreKind.REAL

    # Local blob store
    local_root: Path = Path(".docledger/blobs")

    # Remote blob store (Azure Blob Storage)
    remote_bucket: str = ""
    remote_account_url: str = ""
    remote_connection_string: str = ""
    remote_credential: str = ""
    remote_content_type: str = REMOTE_DEFAULT_CONTENT_TYPE

    # Metadata database
    db_driver: str = "postgresql"
    db_hostname: str = "localhost"
    db_port: int = 54321
    db_username: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "postgres"
    db_sslmode: str = "disable"
    db_url: str = ""

    # Repository behaviour
    verify_references: bool = True
    address_encoding: AddressEncoding = "hex"
    max_content_bytes: int = MAX_CONTENT_BYTES
    max_journal_bytes: int = MAX_JOURNAL_BYTES

    # Observability
    enable_metrics: bool = False

    # ------------------------------------------------------------------
    # Derived configuration
    # ------------------------------------------------------------------

    def api_host_port(self) -> tuple[str, int]:
        """Split ``tcp://host:port`` into its parts."""
        parsed = urlparse(self.api)
        if parsed.scheme != "tcp" or not parsed.hostname or parsed.port is None:
            raise ConfigurationError(f"invalid api address: {self.api!r}")
        return parsed.hostname, parsed.port

    def blob_store_options(self) -> list[Option]:
        local = build_config(LocalBlobConfig, with_root_dir(self.local_root))
        remote_options = [
            with_bucket(self.remote_bucket),
            with_account_url(self.remote_account_url),
            with_connection_string(self.remote_connection_string),
            with_content_type(self.remote_content_type),
        ]
        if self.remote_credential:
            remote_options.append(with_credentials("", self.remote_credential))
        remote = build_config(RemoteBlobConfig, *remote_options)
        return [with_backend_kind(self.filesystem), with_local(local), with_remote(remote)]

    def metadata_store_options(self) -> list[Option]:
        sql_options = [
            with_driver(self.db_driver),
            with_host_port(self.db_hostname, self.db_port),
            with_credentials(self.db_username, self.db_password),
            with_db_name(self.db_name),
            with_ssl_mode(self.db_sslmode),
        ]
        if self.db_url:
            sql_options.append(with_url(self.db_url))
        sql = build_config(SQLStoreConfig, *sql_options)
        return [with_backend_kind(self.persistence), with_sql(sql)]

    def blob_store_config(self) -> BlobStoreConfig:
        return build_config(BlobStoreConfig, *self.blob_store_options())

    def metadata_store_config(self) -> MetadataStoreConfig:
        return build_config(MetadataStoreConfig, *self.metadata_store_options())


def load_settings(**overrides: object) -> ServiceSettings:
    """Load settings from the environment, then apply non-``None`` overrides."""
    updates = {k: v for k, v in overrides.items() if v is not None}
    try:
        return ServiceSettings(**updates)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise ConfigurationError(f"invalid setting {field}: {first['msg']}") from exc
