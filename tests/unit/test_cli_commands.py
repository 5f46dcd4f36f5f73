"""Unit tests for the CLI — Typer command registration and basic behavior."""

from __future__ import annotations

import httpx
import pytest
from typer.testing import CliRunner

from docledger import __version__
from docledger.blobstore.virtual import VirtualBlobStore
from docledger.cli.app import app
from docledger.cli.commands import client as client_module
from docledger.cli.commands import serve as serve_module
from docledger.core.repository import Repository
from docledger.metastore.base import StoreState
from docledger.metastore.virtual import VirtualMetadataStore

runner = CliRunner()

RESOURCE = "33333333-3333-4333-8333-333333333333"


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "stats", "client", "version"):
            assert command in result.output

    def test_client_help_lists_commands(self):
        result = runner.invoke(app, ["client", "--help"])
        assert result.exit_code == 0
        for command in ("health", "ledger", "ledgers"):
            assert command in result.output

    def test_serve_help(self):
        result = runner.invoke(app, ["serve", "--help"])
        assert result.exit_code == 0
        assert "--persistence" in result.output
        assert "--metrics" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


# ---------------------------------------------------------------------------
# Test: serve / stats
# ---------------------------------------------------------------------------


class TestServeCommand:
    def test_bad_listen_address_exits(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DOCLEDGER_FILESYSTEM", "virtual")
        result = runner.invoke(
            app, ["serve", "--persistence", "virtual", "--api", "http://localhost:8080"]
        )
        assert result.exit_code == 2
        assert "invalid api address" in result.output

    def test_bad_backend_exits(self):
        result = runner.invoke(app, ["serve", "--filesystem", "floppy"])
        assert result.exit_code == 2
        assert "filesystem" in result.output


    def test_store_running_before_serving(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DOCLEDGER_FILESYSTEM", "virtual")
        seen = {}

        def fake_run_app(service, host, port, log_level):
            seen["state"] = service.state.repository.ledgers.state
            seen["repository"] = service.state.repository
            seen["address"] = (host, port)

        monkeypatch.setattr(serve_module, "run_app", fake_run_app)
        result = runner.invoke(
            app, ["serve", "--persistence", "virtual", "--api", "tcp://127.0.0.1:9999"]
        )
        assert result.exit_code == 0, result.output
        assert seen["state"] is StoreState.RUNNING
        assert seen["address"] == ("127.0.0.1", 9999)
        assert seen["repository"].ledgers.state is StoreState.STOPPED

    def test_store_that_never_runs_aborts(self, monkeypatch: pytest.MonkeyPatch):
        class Inert(VirtualMetadataStore):
            def run(self) -> None:
                return None

        served = []
        monkeypatch.setattr(serve_module, "STARTUP_TIMEOUT", 0.05)
        monkeypatch.setattr(
            serve_module.Repository,
            "from_settings",
            classmethod(lambda cls, settings: Repository(VirtualBlobStore(), Inert())),
        )
        monkeypatch.setattr(serve_module, "run_app", lambda *args, **kwargs: served.append(1))
        result = runner.invoke(app, ["serve", "--api", "tcp://127.0.0.1:9999"])
        assert result.exit_code == 1
        assert "did not start" in result.output
        assert served == []


class TestStatsCommand:
    def test_virtual_store_is_empty(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DOCLEDGER_FILESYSTEM", "virtual")
        result = runner.invoke(app, ["stats", "--persistence", "virtual"])
        assert result.exit_code == 0
        assert "Revisions" in result.output
        assert "Resources" in result.output

    def test_sqlite_url(self, monkeypatch: pytest.MonkeyPatch, tmp_path):
        monkeypatch.setenv("DOCLEDGER_FILESYSTEM", "virtual")
        url = f"sqlite:///{tmp_path / 'ledgers.db'}"
        result = runner.invoke(app, ["stats", "--persistence", "real", "--db-url", url])
        assert result.exit_code == 0
        assert "Bytes" in result.output


# ---------------------------------------------------------------------------
# Test: client
# ---------------------------------------------------------------------------


class TestClientCommands:
    @pytest.fixture
    def calls(self, monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str, dict | None]]:
        recorded: list[tuple[str, str, dict | None]] = []
        responses: dict[str, httpx.Response] = {
            "/status/": httpx.Response(200, json={}),
            "/ledgers/": httpx.Response(
                200, json={"name": "doc-1", "resource_id": RESOURCE}, headers={"X-Duration": "0.001s"}
            ),
            "/ledgers/revisions/": httpx.Response(
                404, json={"description": "not found", "code": 404}
            ),
        }

        def fake_request(base, path, params=None, timeout=10.0):
            recorded.append((base, path, params))
            return responses[path]

        monkeypatch.setattr(client_module, "_request", fake_request)
        return recorded

    def test_health(self, calls):
        result = runner.invoke(app, ["client", "health", "--base", "http://svc:9000"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert calls == [("http://svc:9000", "/status/", None)]

    def test_ledger_passes_query(self, calls):
        result = runner.invoke(
            app, ["client", "ledger", RESOURCE, "--tags", "a,b", "--author-id", ""]
        )
        assert result.exit_code == 0
        assert "doc-1" in result.output
        _, path, params = calls[0]
        assert path == "/ledgers/"
        assert params == {"resource_id": RESOURCE, "query.tags": "a,b", "query.author_id": ""}

    def test_ledger_without_filters(self, calls):
        runner.invoke(app, ["client", "ledger", RESOURCE])
        assert calls[0][2] == {"resource_id": RESOURCE}

    def test_error_response_exits(self, calls):
        result = runner.invoke(app, ["client", "ledgers", RESOURCE])
        assert result.exit_code == 1
        assert "not found" in result.output
