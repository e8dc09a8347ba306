"""libdupes normalize command."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

console = Console()


def normalize_cmd(
    titles: list[str] = typer.Argument(..., help="Titles to normalize"),
) -> None:
    """Print the comparison key each title normalizes to."""
    from libdupes.core.normalizer import normalize

    for title in titles:
        key = escape(repr(normalize(title)))
        console.print(f"{escape(title)} [dim]->[/dim] [bold]{key}[/bold]", highlight=False)
