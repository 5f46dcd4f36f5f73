"""``docledger stats`` — print revision counters for the configured stores."""

from __future__ import annotations

import typer
from rich.table import Table

from docledger.cli.console import console
from docledger.config import load_settings
from docledger.core.repository import Repository
from docledger.errors import DocLedgerError


def stats_cmd(
    persistence: str = typer.Option(
        None, "--persistence", help="Metadata store: real, virtual or nop."
    ),
    db_url: str = typer.Option(None, "--db-url", help="Full SQLAlchemy URL of the metadata store."),
) -> None:
    """Show live revision, resource and byte totals."""
    try:
        settings = load_settings(persistence=persistence, db_url=db_url)
        repository = Repository.from_settings(settings)
        try:
            stats = repository.statistics()
        finally:
            repository.close()
    except DocLedgerError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title="Ledger statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Revisions", f"{stats.total_revisions:,}")
    table.add_row("Resources", f"{stats.distinct_resources:,}")
    table.add_row("Bytes", f"{stats.total_bytes:,}")
    console.print(table)
