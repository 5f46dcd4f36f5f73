"""Adversarial tests — malformed and hostile requests at the HTTP boundary.

Every rejection must be a 400 with the JSON error envelope, and nothing may
reach the stores:
1. Identifiers that are not canonical lowercase UUIDs
2. Query strings with blank tags
3. Bodies that are not what their content type claims
4. Multipart journals that are oversized or missing parts
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from docledger.blobstore.virtual import VirtualBlobStore
from docledger.core.repository import Repository

AUTHOR = "11111111-1111-4111-8111-111111111111"
DOCUMENT = json.dumps({"name": "doc", "author_id": AUTHOR, "tags": []})


def _assert_rejected(response, fragment: str | None = None) -> None:
    assert response.status_code == 400, response.text
    assert response.headers["content-type"] == "application/json; charset=utf-8"
    assert response.headers["x-content-type-options"] == "nosniff"
    body = response.json()
    assert body["code"] == 400
    if fragment is not None:
        assert fragment in body["description"]


class TestIdentifierInjection:
    @pytest.mark.parametrize(
        "resource_id",
        [
            "AAAAAAAA-1111-4111-8111-111111111111",
            "11111111-1111-4111-8111-11111111111",
            "11111111111141118111111111111111",
            "' OR 1=1 --",
            "../../etc/passwd",
            "11111111-1111-4111-8111-111111111111; DROP TABLE ledgers",
        ],
    )
    @pytest.mark.parametrize("path", ["/ledgers/", "/ledgers/revisions/", "/contents/"])
    def test_malformed_resource_id(self, client: TestClient, path, resource_id):
        _assert_rejected(client.get(path, params={"resource_id": resource_id}), "resource_id")

    def test_malformed_resource_id_on_append(self, client: TestClient):
        response = client.put(
            "/ledgers/",
            params={"resource_id": "not-a-uuid"},
            content=DOCUMENT,
            headers={"Content-Type": "application/json"},
        )
        _assert_rejected(response, "resource_id")

    def test_ledgers_table_survives(self, client: TestClient, repository: Repository):
        client.get("/ledgers/", params={"resource_id": "x'; DELETE FROM ledgers; --"})
        assert repository.statistics().total_revisions == 0


class TestQueryTampering:
    @pytest.mark.parametrize("tags", [",", "a,,b", "a, ", " "])
    def test_blank_tags_rejected(self, client: TestClient, tags):
        response = client.get(
            "/ledgers/revisions/",
            params={"resource_id": AUTHOR, "query.tags": tags},
        )
        _assert_rejected(response, "tags")


class TestBodyTampering:
    @pytest.mark.parametrize(
        "body",
        [
            "{not json",
            "[]",
            json.dumps({"name": "doc"}),
            json.dumps({"name": "", "author_id": AUTHOR}),
            json.dumps({"name": "doc", "author_id": AUTHOR, "tags": "a,b"}),
            json.dumps({"name": "doc", "author_id": AUTHOR, "resource_size": -5}),
        ],
    )
    def test_bad_ledger_body(self, client: TestClient, repository: Repository, body):
        response = client.post(
            "/ledgers/", content=body, headers={"Content-Type": "application/json"}
        )
        _assert_rejected(response)
        assert repository.statistics().total_revisions == 0

    def test_json_sent_as_form(self, client: TestClient):
        response = client.post(
            "/ledgers/",
            content=DOCUMENT,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        _assert_rejected(response, "application/json")

    def test_bad_content_type_on_resource(self, client: TestClient):
        body = json.dumps(
            {"name": "doc", "author_id": AUTHOR, "resource_content_type": "not a mime"}
        )
        response = client.post(
            "/ledgers/", content=body, headers={"Content-Type": "application/json"}
        )
        _assert_rejected(response, "content type")


class TestJournalTampering:
    def test_oversized_journal(self, client: TestClient, virtual_blobs: VirtualBlobStore):
        response = client.post(
            "/journals/",
            files={"content": ("content", b"x" * (10 * 1024 * 1024 + 1), "text/plain")},
            data={"document": DOCUMENT},
        )
        _assert_rejected(response, "too large")
        assert len(virtual_blobs) == 0

    @pytest.mark.parametrize("missing", ["content", "document"])
    def test_missing_part(self, client: TestClient, missing):
        files = {"content": ("content", b"hello", "text/plain")}
        data = {"document": DOCUMENT}
        if missing == "content":
            files = {"other": ("other", b"hello", "text/plain")}
        else:
            data = {}
        response = client.post("/journals/", files=files, data=data)
        _assert_rejected(response, missing)

    def test_not_multipart(self, client: TestClient):
        response = client.post(
            "/journals/", content=DOCUMENT, headers={"Content-Type": "application/json"}
        )
        _assert_rejected(response, "multipart")

    def test_invalid_document_part(self, client: TestClient, repository: Repository):
        response = client.post(
            "/journals/",
            files={"content": ("content", b"hello", "text/plain")},
            data={"document": json.dumps({"name": "doc"})},
        )
        _assert_rejected(response, "author_id")
        assert repository.statistics().total_revisions == 0

    def test_invalid_payload_content_type(self, client: TestClient):
        response = client.post(
            "/journals/",
            files={"content": ("content", b"hello", "bogus")},
            data={"document": DOCUMENT},
        )
        _assert_rejected(response, "content type")

    def test_append_journal_to_unknown_resource(self, client: TestClient):
        response = client.put(
            "/journals/",
            params={"resource_id": "22222222-2222-4222-8222-222222222222"},
            files={"content": ("content", b"hello", "text/plain")},
            data={"document": DOCUMENT},
        )
        assert response.status_code == 404


class TestContentTampering:
    def test_missing_content_type(self, client: TestClient):
        response = client.post("/contents/", content=b"payload")
        _assert_rejected(response, "content-type")

    def test_malformed_content_type(self, client: TestClient, virtual_blobs: VirtualBlobStore):
        response = client.post(
            "/contents/", content=b"payload", headers={"Content-Type": "no slash here"}
        )
        _assert_rejected(response, "content type")
        assert len(virtual_blobs) == 0
