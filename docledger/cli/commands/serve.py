"""``docledger serve`` — run the document service.

Builds the blob and metadata stores from settings (environment first, flags
on top), starts the metadata store's run loop on a background thread and
serves the HTTP API through uvicorn until interrupted.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import typer
from rich.panel import Panel

from docledger.cli.console import configure_logging, console
from docledger.config import load_settings
from docledger.core.repository import Repository
from docledger.errors import DocLedgerError
from docledger.http.app import create_app, run_app
from docledger.http.metrics import ServiceMetrics

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT = 10.0


def serve_cmd(
    filesystem: str = typer.Option(
        None, "--filesystem", help="Blob store: local, remote, virtual or nop."
    ),
    persistence: str = typer.Option(
        None, "--persistence", help="Metadata store: real, virtual or nop."
    ),
    local_root: str = typer.Option(None, "--local-root", help="Directory for local blobs."),
    remote_bucket: str = typer.Option(
        None, "--remote-bucket", help="Azure container holding remote blobs."
    ),
    remote_account_url: str = typer.Option(
        None, "--remote-account-url", help="Azure storage account URL."
    ),
    remote_connection_string: str = typer.Option(
        None, "--remote-connection-string", help="Azure storage connection string."
    ),
    remote_credential: str = typer.Option(
        None, "--remote-credential", help="Account key or SAS token for the account URL."
    ),
    db_driver: str = typer.Option(None, "--db-driver", help="postgresql or sqlite."),
    db_hostname: str = typer.Option(None, "--db-hostname", help="Database host."),
    db_port: int = typer.Option(None, "--db-port", help="Database port."),
    db_username: str = typer.Option(None, "--db-username", help="Database user."),
    db_password: str = typer.Option(None, "--db-password", help="Database password."),
    db_name: str = typer.Option(None, "--db-name", help="Database name (file path for sqlite)."),
    db_sslmode: str = typer.Option(
        None,
        "--db-sslmode",
        help="disable, allow, prefer, require, verify-ca or verify-full.",
    ),
    db_url: str = typer.Option(None, "--db-url", help="Full SQLAlchemy URL; overrides the db flags."),
    api: str = typer.Option(None, "--api", help="Listen address, e.g. tcp://0.0.0.0:8080."),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Verbose logging."),
    verify_references: Optional[bool] = typer.Option(
        None,
        "--verify-references/--no-verify-references",
        help="Reject ledgers whose content address has no stored blob.",
    ),
    enable_metrics: Optional[bool] = typer.Option(
        None, "--metrics/--no-metrics", help="Record OpenTelemetry request metrics."
    ),
) -> None:
    """Serve the document repository over HTTP."""
    try:
        settings = load_settings(
            filesystem=filesystem,
            persistence=persistence,
            local_root=local_root,
            remote_bucket=remote_bucket,
            remote_account_url=remote_account_url,
            remote_connection_string=remote_connection_string,
            remote_credential=remote_credential,
            db_driver=db_driver,
            db_hostname=db_hostname,
            db_port=db_port,
            db_username=db_username,
            db_password=db_password,
            db_name=db_name,
            db_sslmode=db_sslmode,
            db_url=db_url,
            api=api,
            debug=debug,
            verify_references=verify_references,
            enable_metrics=enable_metrics,
        )
        configure_logging(settings.log_level, settings.debug)
        host, port = settings.api_host_port()
        repository = Repository.from_settings(settings)
    except DocLedgerError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    store_thread = threading.Thread(
        target=repository.ledgers.run, name="metadata-store", daemon=True
    )
    store_thread.start()
    if not repository.ledgers.wait_running(timeout=STARTUP_TIMEOUT):
        repository.close()
        console.print("[bold red]Metadata store did not start.[/bold red]")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            "\n".join([
                f"[bold]Listening:[/bold]    {host}:{port}",
                f"[bold]Blobs:[/bold]        {settings.filesystem.value}",
                f"[bold]Metadata:[/bold]     {settings.persistence.value}",
                f"[bold]References:[/bold]   "
                f"{'verified' if settings.verify_references else 'unchecked'}",
                f"[bold]Metrics:[/bold]      {'on' if settings.enable_metrics else 'off'}",
            ]),
            title="[bold]docledger[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )

    metrics = ServiceMetrics.from_settings(settings)
    app = create_app(repository, settings=settings, metrics=metrics)
    try:
        run_app(app, host=host, port=port, log_level="debug" if settings.debug else "info")
    finally:
        logger.info("shutting down")
        repository.close()
        store_thread.join(timeout=5)
