"""libdupes convert command."""

from __future__ import annotations

from pathlib import Path

import orjson
import typer
from rich.console import Console

console = Console()


def convert(
    entries_path: str = typer.Argument(..., help="JSON catalog export or JSONL file"),
    output: str = typer.Option(..., "-o", "--out", help="Output JSONL path"),
) -> None:
    """Rewrite a catalog export as one entry per line (JSONL)."""
    from libdupes.io.entries_io import read_entries, write_entries

    if not Path(entries_path).is_file():
        console.print(f"[red]Error: {entries_path} is not a file[/red]")
        raise typer.Exit(1)
    try:
        entries = read_entries(entries_path)
    except (OSError, orjson.JSONDecodeError) as exc:
        console.print(f"[red]Error: could not read {entries_path}: {exc}[/red]")
        raise typer.Exit(1)
    if not entries:
        console.print("[yellow]No entries found.[/yellow]")
        raise typer.Exit(1)

    write_entries(output, entries)
    console.print(f"[green]Wrote {len(entries):,} entries to {output}[/green]")
