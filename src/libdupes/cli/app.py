"""Root Typer app with global options."""

from __future__ import annotations

from typing import Optional

import typer

app = typer.Typer(
    name="libdupes",
    help="Find duplicate entries in a media library catalog.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        from libdupes import __version__

        typer.echo(f"libdupes {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version."
    ),
) -> None:
    """libdupes: duplicate detection for library catalogs."""


# Import and register commands
from libdupes.cli.convert import convert  # noqa: E402
from libdupes.cli.detect import detect  # noqa: E402
from libdupes.cli.normalize import normalize_cmd  # noqa: E402

app.command()(detect)
app.command(name="normalize")(normalize_cmd)
app.command()(convert)
