"""Shared console and logging setup for the command line."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Route stdlib logging through rich; ``debug`` forces DEBUG level."""
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=debug, show_path=debug)],
        force=True,
    )
