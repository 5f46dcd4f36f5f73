"""Shared test fixtures for docledger."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docledger.blobstore.local import LocalBlobStore
from docledger.blobstore.virtual import VirtualBlobStore
from docledger.config import ServiceSettings
from docledger.core.repository import Repository
from docledger.http.app import create_app
from docledger.metastore.real import SQLMetadataStore
from docledger.metastore.virtual import VirtualMetadataStore
from docledger.models.identifier import new_identifier
from docledger.models.ledger import Ledger, build_ledger

AUTHOR = "11111111-1111-4111-8111-111111111111"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def virtual_blobs() -> VirtualBlobStore:
    return VirtualBlobStore()


@pytest.fixture
def local_blobs(tmp_dir: Path) -> LocalBlobStore:
    """Provide a LocalBlobStore rooted in a temp directory."""
    return LocalBlobStore(tmp_dir / "blobs")


@pytest.fixture
def sql_store() -> Iterator[SQLMetadataStore]:
    """Provide a fresh in-memory SQLite metadata store."""
    store = SQLMetadataStore.in_memory(ping_interval=0.05)
    yield store
    store.close()


@pytest.fixture(params=["sql", "virtual"])
def metadata_store(
    request: pytest.FixtureRequest,
) -> Iterator[SQLMetadataStore | VirtualMetadataStore]:
    """Each metadata store variant with persistence semantics."""
    if request.param == "sql":
        store = SQLMetadataStore.in_memory(ping_interval=0.05)
    else:
        store = VirtualMetadataStore(ping_interval=0.05)
    yield store
    store.close()


@pytest.fixture
def repository(virtual_blobs: VirtualBlobStore, sql_store: SQLMetadataStore) -> Repository:
    """Provide a Repository over in-memory blobs and an in-memory SQL store."""
    return Repository(virtual_blobs, sql_store)


@pytest.fixture
def settings() -> ServiceSettings:
    return ServiceSettings(filesystem="virtual", persistence="virtual")


@pytest.fixture
def client(repository: Repository, settings: ServiceSettings) -> TestClient:
    """Provide an HTTP test client bound to the repository fixture."""
    return TestClient(create_app(repository, settings=settings))


@pytest.fixture
def make_ledger() -> Callable[..., Ledger]:
    """Factory for valid ledgers with overridable fields."""

    def _make(**overrides) -> Ledger:
        fields = {
            "resource_id": new_identifier(),
            "name": "doc",
            "author_id": AUTHOR,
            "tags": [],
        }
        fields.update(overrides)
        return build_ledger(**fields)

    return _make
