"""Tests for the Azure-backed blob store, with the container client mocked."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import ContentSettings

from docledger.blobstore.remote import RemoteBlobStore
from docledger.core.options import (
    build_config,
    with_account_url,
    with_bucket,
    with_connection_string,
)
from docledger.errors import ConfigurationError, NotFoundError, StoreError
from docledger.models.config import RemoteBlobConfig


@pytest.fixture
def container() -> MagicMock:
    return MagicMock()


@pytest.fixture
def remote(container: MagicMock) -> RemoteBlobStore:
    config = build_config(
        RemoteBlobConfig,
        with_bucket("documents"),
        with_connection_string("UseDevelopmentStorage=true"),
    )
    with patch.object(RemoteBlobStore, "_get_container_client", return_value=container):
        return RemoteBlobStore(config)


class TestConstruction:
    def test_bucket_required(self):
        config = build_config(RemoteBlobConfig, with_connection_string("x"))
        with pytest.raises(ConfigurationError, match="bucket"):
            RemoteBlobStore(config)

    def test_endpoint_required(self):
        config = build_config(RemoteBlobConfig, with_bucket("documents"))
        with pytest.raises(ConfigurationError, match="connection string"):
            RemoteBlobStore(config)

    def test_account_url_builds_service_client(self):
        config = build_config(
            RemoteBlobConfig,
            with_bucket("documents"),
            with_account_url("https://acct.blob.core.windows.net"),
        )
        with patch("docledger.blobstore.remote.BlobServiceClient") as service:
            RemoteBlobStore(config)
        service.assert_called_once_with("https://acct.blob.core.windows.net", credential=None)
        service.return_value.get_container_client.assert_called_once_with("documents")


class TestWrite:
    def test_sync_uploads_with_length_and_type(self, remote, container):
        with remote.create("abc") as writer:
            writer.set_content_type("application/json")
            writer.write(b"{}")
            writer.write(b"\n")
            writer.sync()
        container.upload_blob.assert_called_once()
        kwargs = container.upload_blob.call_args.kwargs
        assert kwargs["name"] == "abc"
        assert kwargs["data"] == b"{}\n"
        assert kwargs["length"] == 3
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == "application/json"

    def test_default_content_type(self, remote, container):
        with remote.create("abc") as writer:
            writer.write(b"text")
            writer.sync()
        settings = container.upload_blob.call_args.kwargs["content_settings"]
        assert settings.content_type == "text/plain; charset=utf-8"

    def test_nothing_uploaded_without_sync(self, remote, container):
        with remote.create("abc") as writer:
            writer.write(b"draft")
        container.upload_blob.assert_not_called()

    def test_upload_failure(self, remote, container):
        container.upload_blob.side_effect = AzureError("boom")
        writer = remote.create("abc")
        writer.write(b"x")
        with pytest.raises(StoreError):
            writer.sync()


class TestRead:
    def test_open_streams_chunks(self, remote, container):
        downloader = MagicMock()
        downloader.size = 5
        downloader.properties.content_settings = ContentSettings(content_type="text/plain")
        downloader.chunks.return_value = [b"he", b"llo"]
        container.download_blob.return_value = downloader

        reader = remote.open("abc")
        assert reader.size() == 5
        assert reader.content_type == "text/plain"
        assert reader.read(3) == b"hel"
        assert reader.read() == b"lo"
        container.download_blob.assert_called_once_with("abc")

    def test_open_missing(self, remote, container):
        container.download_blob.side_effect = ResourceNotFoundError("missing")
        with pytest.raises(NotFoundError):
            remote.open("abc")

    def test_exists(self, remote, container):
        container.get_blob_client.return_value.exists.return_value = True
        assert remote.exists("abc") is True

    def test_exists_is_false_for_traversal(self, remote, container):
        assert remote.exists("../outside") is False
        container.get_blob_client.assert_not_called()

    def test_exists_transport_failure(self, remote, container):
        container.get_blob_client.return_value.exists.side_effect = AzureError("down")
        with pytest.raises(StoreError):
            remote.exists("abc")


class TestMutations:
    def test_rename_copies_then_deletes(self, remote, container):
        source, target = MagicMock(), MagicMock()
        source.exists.return_value = True
        source.url = "https://acct/documents/old"
        container.get_blob_client.side_effect = [source, target]

        remote.rename("old", "new")

        target.start_copy_from_url.assert_called_once_with(
            "https://acct/documents/old", requires_sync=True
        )
        source.delete_blob.assert_called_once_with()

    def test_rename_missing(self, remote, container):
        container.get_blob_client.return_value.exists.return_value = False
        with pytest.raises(NotFoundError):
            remote.rename("old", "new")

    def test_remove_missing(self, remote, container):
        container.delete_blob.side_effect = ResourceNotFoundError("missing")
        with pytest.raises(NotFoundError):
            remote.remove("abc")


class TestWalk:
    def test_walk_lists_with_prefix(self, remote, container):
        container.list_blobs.return_value = [
            SimpleNamespace(
                name="a/one",
                size=1,
                content_settings=ContentSettings(content_type="text/plain"),
                last_modified=None,
            ),
            SimpleNamespace(name="a/two", size=None, content_settings=None, last_modified=None),
        ]
        seen = {}

        def visit(path, info, error):
            seen[path] = info

        remote.walk("a/", visit)
        container.list_blobs.assert_called_once_with(name_starts_with="a")
        assert seen["a/one"].content_type == "text/plain"
        assert seen["a/two"].size == 0
        assert seen["a/two"].content_type == "application/octet-stream"

    def test_listing_error_goes_to_visitor(self, remote, container):
        container.list_blobs.side_effect = AzureError("unreachable")
        errors = []

        def visit(path, info, error):
            errors.append(error)
            return error

        with pytest.raises(StoreError):
            remote.walk("", visit)
        assert isinstance(errors[0], StoreError)
