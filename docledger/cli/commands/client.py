"""``docledger client`` — query a running service over HTTP."""

from __future__ import annotations

import httpx
import typer

from docledger.cli.console import console

client_app = typer.Typer(
    name="client",
    help="Query a running docledger service.",
    no_args_is_help=True,
    add_completion=False,
)

DEFAULT_BASE = "http://localhost:8080"


def _query_params(resource_id: str, tags: str | None, author_id: str | None) -> dict[str, str]:
    params = {"resource_id": resource_id}
    if tags:
        params["query.tags"] = tags
    if author_id is not None:
        params["query.author_id"] = author_id
    return params


def _request(base: str, path: str, params: dict[str, str] | None = None, timeout: float = 10.0) -> httpx.Response:
    try:
        with httpx.Client(base_url=base, timeout=timeout) as client:
            return client.get(path, params=params)
    except httpx.HTTPError as exc:
        console.print(f"[bold red]Request failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def _show(response: httpx.Response) -> None:
    duration = response.headers.get("X-Duration", "")
    if response.is_success:
        console.print_json(response.text)
        console.print(f"[dim]{response.status_code} in {duration}[/dim]")
        return
    try:
        description = response.json().get("description", response.text)
    except ValueError:
        description = response.text
    console.print(f"[bold red]{response.status_code}[/bold red] {description}")
    raise typer.Exit(code=1)


@client_app.command(name="health", help="Check the service status endpoint.")
def health_cmd(
    base: str = typer.Option(DEFAULT_BASE, "--base", help="Service base URL."),
) -> None:
    response = _request(base, "/status/")
    if response.is_success:
        console.print("[bold green]OK[/bold green]")
    else:
        console.print(f"[bold red]{response.status_code}[/bold red] service unhealthy")
        raise typer.Exit(code=1)


@client_app.command(name="ledger", help="Show the latest revision of a resource.")
def ledger_cmd(
    resource_id: str = typer.Argument(..., help="Resource identifier."),
    tags: str = typer.Option(None, "--tags", help="Comma-separated tag filter."),
    author_id: str = typer.Option(None, "--author-id", help="Author filter."),
    base: str = typer.Option(DEFAULT_BASE, "--base", help="Service base URL."),
) -> None:
    _show(_request(base, "/ledgers/", _query_params(resource_id, tags, author_id)))


@client_app.command(name="ledgers", help="List every revision of a resource, newest first.")
def ledgers_cmd(
    resource_id: str = typer.Argument(..., help="Resource identifier."),
    tags: str = typer.Option(None, "--tags", help="Comma-separated tag filter."),
    author_id: str = typer.Option(None, "--author-id", help="Author filter."),
    base: str = typer.Option(DEFAULT_BASE, "--base", help="Service base URL."),
) -> None:
    _show(_request(base, "/ledgers/revisions/", _query_params(resource_id, tags, author_id)))
