"""Main Typer application — imports and registers all CLI commands.

Entry point: ``docledger`` (configured via pyproject.toml console_scripts).

Commands: serve, stats, client (health, ledger, ledgers).
"""

from __future__ import annotations

import typer

from docledger.cli.commands.client import client_app
from docledger.cli.commands.serve import serve_cmd
from docledger.cli.commands.stats import stats_cmd

app = typer.Typer(
    name="docledger",
    help="docledger: content-addressed document repository with ledger revisions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="serve", help="Serve the document repository over HTTP.")(serve_cmd)
app.command(name="stats", help="Show revision statistics for the configured stores.")(stats_cmd)
app.add_typer(client_app, name="client")


@app.command(name="version", help="Print the docledger version.")
def version_cmd() -> None:
    from docledger import __version__
    from docledger.cli.console import console

    console.print(f"docledger {__version__}")
