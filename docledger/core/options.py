"""Enumerated configuration options and the fold that applies them.

Each option is a plain record ``Option(kind, value)``. :func:`build_config`
starts from the target config's defaults and applies the options in order;
the first option the target does not recognise, or whose value fails
validation, aborts the whole build with :class:`ConfigurationError`.

Example::

    config = build_config(
        SQLStoreConfig,
        with_host_port("db.internal", 5432),
        with_credentials("svc", "secret"),
        with_ssl_mode("require"),
    )
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, NamedTuple, TypeVar

from pydantic import BaseModel, ValidationError

from docledger.errors import ConfigurationError
from docledger.models.config import RemoteBlobConfig

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class OptionKind(str, Enum):
    BACKEND_KIND = "backend_kind"
    ROOT_DIR = "root_dir"
    HOST_PORT = "host_port"
    CREDENTIALS = "credentials"
    DB_NAME = "db_name"
    SSL_MODE = "ssl_mode"
    DRIVER = "driver"
    URL = "url"
    BUCKET = "bucket"
    ACCOUNT_URL = "account_url"
    CONNECTION_STRING = "connection_string"
    CONTENT_TYPE = "content_type"
    LOCAL = "local"
    REMOTE = "remote"
    SQL = "sql"


class Option(NamedTuple):
    kind: OptionKind
    value: Any


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def with_backend_kind(kind: str | Enum) -> Option:
    return Option(OptionKind.BACKEND_KIND, kind)


def with_root_dir(path: str | Path) -> Option:
    return Option(OptionKind.ROOT_DIR, Path(path))


def with_host_port(host: str, port: int) -> Option:
    return Option(OptionKind.HOST_PORT, (host, port))


def with_credentials(username: str, password: str) -> Option:
    """Database user and password; for the remote blob store only the secret is used."""
    return Option(OptionKind.CREDENTIALS, (username, password))


def with_db_name(name: str) -> Option:
    return Option(OptionKind.DB_NAME, name)


def with_ssl_mode(mode: str) -> Option:
    return Option(OptionKind.SSL_MODE, mode)


def with_driver(driver: str) -> Option:
    return Option(OptionKind.DRIVER, driver)


def with_url(url: str) -> Option:
    return Option(OptionKind.URL, url)


def with_bucket(bucket: str) -> Option:
    return Option(OptionKind.BUCKET, bucket)


def with_account_url(url: str) -> Option:
    return Option(OptionKind.ACCOUNT_URL, url)


def with_connection_string(value: str) -> Option:
    return Option(OptionKind.CONNECTION_STRING, value)


def with_content_type(content_type: str) -> Option:
    return Option(OptionKind.CONTENT_TYPE, content_type)


def with_local(config: BaseModel) -> Option:
    return Option(OptionKind.LOCAL, config)


def with_remote(config: BaseModel) -> Option:
    return Option(OptionKind.REMOTE, config)


def with_sql(config: BaseModel) -> Option:
    return Option(OptionKind.SQL, config)


# ---------------------------------------------------------------------------
# Fold
# ---------------------------------------------------------------------------


def _pair(value: Any, first: str, second: str) -> dict[str, Any]:
    a, b = value
    return {first: a, second: b}


_UPDATES: dict[OptionKind, Callable[[type[BaseModel], Any], dict[str, Any]]] = {
    OptionKind.BACKEND_KIND: lambda cfg, v: {"kind": v},
    OptionKind.ROOT_DIR: lambda cfg, v: {"root_dir": v},
    OptionKind.HOST_PORT: lambda cfg, v: _pair(v, "host", "port"),
    OptionKind.CREDENTIALS: lambda cfg, v: (
        {"credential": v[1]} if cfg is RemoteBlobConfig else _pair(v, "username", "password")
    ),
    OptionKind.DB_NAME: lambda cfg, v: {"db_name": v},
    OptionKind.SSL_MODE: lambda cfg, v: {"ssl_mode": v},
    OptionKind.DRIVER: lambda cfg, v: {"driver": v},
    OptionKind.URL: lambda cfg, v: {"url": v},
    OptionKind.BUCKET: lambda cfg, v: {"bucket": v},
    OptionKind.ACCOUNT_URL: lambda cfg, v: {"account_url": v},
    OptionKind.CONNECTION_STRING: lambda cfg, v: {"connection_string": v},
    OptionKind.CONTENT_TYPE: lambda cfg, v: {"content_type": v},
    OptionKind.LOCAL: lambda cfg, v: {"local": v},
    OptionKind.REMOTE: lambda cfg, v: {"remote": v},
    OptionKind.SQL: lambda cfg, v: {"sql": v},
}


def apply_option(config: ConfigT, option: Option) -> ConfigT:
    """Return a new config with *option* applied; *config* is left untouched."""
    config_type = type(config)
    accepted = getattr(config_type, "option_kinds", frozenset())
    if option.kind not in accepted:
        raise ConfigurationError(
            f"option {option.kind.value!r} is not valid for {config_type.__name__}"
        )
    try:
        updates = _UPDATES[option.kind](config_type, option.value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"option {option.kind.value!r}: {exc}") from exc

    fields = dict(config)
    fields.update(updates)
    try:
        return config_type.model_validate(fields)
    except ValidationError as exc:
        detail = exc.errors()[0]
        raise ConfigurationError(
            f"option {option.kind.value!r}: {detail['msg']}"
        ) from exc


def build_config(config_type: type[ConfigT], *options: Option) -> ConfigT:
    """Fold *options* over the defaults of *config_type*."""
    config = config_type()
    for option in options:
        config = apply_option(config, option)
    return config
