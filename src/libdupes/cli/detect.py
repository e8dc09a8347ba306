"""libdupes detect command."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import orjson
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from libdupes.models.config import (
    DEFAULT_IMAGE_THRESHOLD,
    DetectionOptions,
    EngineConfig,
    ImageHashSettings,
    TitleStrategy,
)

if TYPE_CHECKING:
    from libdupes.pipeline.engine import DetectionResult

console = Console()

_MAX_ROWS = 50


def _print_groups(result: DetectionResult) -> None:
    from libdupes.utils import truncate

    signals = ", ".join(s.value for s in result.signals)
    console.print(
        f"[bold]Duplicate groups:[/bold] {len(result.groups):,} "
        f"[dim](signals: {signals}{'; merged' if result.merged else ''})[/dim]"
    )
    if not result.groups:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Group")
    table.add_column("Members", justify="right")
    table.add_column("Entries")
    for label, members in list(result.groups.items())[:_MAX_ROWS]:
        names = ", ".join(f"{escape(m.title or '?')} [dim]#{m.id}[/dim]" for m in members)
        table.add_row(escape(truncate(label)), str(len(members)), names)
    console.print(table)
    if len(result.groups) > _MAX_ROWS:
        console.print(f"  ... and {len(result.groups) - _MAX_ROWS} more (use --output to save all)")

    if result.failed_workers:
        console.print(f"[yellow]Incomplete signals:[/yellow] {', '.join(result.failed_workers)}")


def detect(
    entries_path: str = typer.Argument(..., help="JSON or JSONL file of library entries"),
    alternative_titles: bool = typer.Option(
        False, "--alternative-titles", "-a", help="Match titles inside descriptions"
    ),
    trackers: bool = typer.Option(
        False, "--trackers", "-t", help="Group entries tracked as the same remote item"
    ),
    image_hashes: bool = typer.Option(
        False, "--image-hashes", "-i", help="Compare thumbnails by perceptual hash"
    ),
    strategy: TitleStrategy = typer.Option(
        TitleStrategy.ALTERNATIVE_TITLES,
        "--strategy",
        case_sensitive=False,
        help="Title matcher used by --alternative-titles",
    ),
    threshold: float = typer.Option(
        DEFAULT_IMAGE_THRESHOLD, "--threshold", help="Max averaged hash distance (bits)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Include image-hash distance samples"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Available parallelism"),
    api_url: Optional[str] = typer.Option(
        None, "--api-url", envvar="LIBDUPES_API_URL", help="Base URL for relative thumbnails"
    ),
    timeout: Optional[float] = typer.Option(
        300.0, "--timeout", help="Seconds before a worker is abandoned"
    ),
    output: Optional[str] = typer.Option(None, "-o", "--output", help="Output JSON path"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Detect duplicate entries and print the groups."""
    from libdupes.io.entries_io import read_entries, write_result
    from libdupes.pipeline.engine import DetectionCancelled, run_detection
    from libdupes.pipeline.signals import CancellationToken
    from libdupes.utils import setup_logging

    setup_logging(verbose=verbose)

    path = Path(entries_path)
    if not path.is_file():
        console.print(f"[red]Error: {entries_path} is not a file[/red]")
        raise typer.Exit(1)
    try:
        entries = read_entries(path)
    except (OSError, orjson.JSONDecodeError) as exc:
        console.print(f"[red]Error: could not read {entries_path}: {exc}[/red]")
        raise typer.Exit(1)
    if not entries:
        console.print("[red]No entries found.[/red]")
        raise typer.Exit(1)

    options = DetectionOptions(
        check_alternative_titles=alternative_titles,
        check_tracked_by_same_tracker=trackers,
        check_image_hashes=image_hashes,
        title_strategy=strategy,
        threshold=threshold,
        debug=debug,
    )
    config = EngineConfig(worker_timeout=timeout)
    if workers is not None:
        config.parallelism = max(1, workers)
    image_settings = ImageHashSettings()
    if api_url:
        image_settings.backend_base = api_url

    token = CancellationToken()
    token.install()
    try:
        with console.status(f"Checking {len(entries):,} entries for duplicates..."):
            result = run_detection(entries, options, config, image_settings, cancel_token=token)
    except DetectionCancelled:
        console.print("[yellow]Detection cancelled.[/yellow]")
        raise typer.Exit(130)
    finally:
        token.uninstall()

    _print_groups(result)
    if output:
        write_result(output, result.to_message())
        console.print(f"[green]Saved to {output}[/green]")
