# ABOUTME: The `metamend fix` command that repairs the device library database.
# ABOUTME: Runs one fix pass and reports what was fixed as a table or JSON.

import json as json_lib
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from metamend.cli.options import db_option, drm_vault_option, storage_option
from metamend.core.fixer import FixOptions, fix_library
from metamend.core.reconciler import DRM_VAULTS, FixStatistics
from metamend.db.connection import DEFAULT_DB_PATH, open_device_library
from metamend.db.library import DeviceLibrary, LibraryError

console = Console()

_CONFIRM_TEXT = (
    "The reader sometimes has problems parsing EPUB metadata.\n"
    "This fixes authors, sorting, genres and series from the EPUB files\n"
    "and removes books whose files are gone.\n"
    "The library database {path} will be altered. Proceed?"
)

_ROWS = (
    ("Authors fixed", "authors_fixed"),
    ("Sorting fixed", "sorting_fixed"),
    ("Genres fixed", "genres_fixed"),
    ("Series fixed", "series_fixed"),
    ("Books cleaned from DB", "ghost_books_cleaned"),
)


@click.command("fix")
@db_option
@storage_option
@drm_vault_option
@click.option(
    "--ghosts/--no-ghosts",
    "remove_ghosts",
    default=True,
    help="Remove books that have no file entry (default: on).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Report what would be fixed without writing anything.",
)
@click.option(
    "-y", "--yes",
    is_flag=True,
    default=False,
    help="Don't ask for confirmation.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="Output statistics as JSON.",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    default=False,
    help="Log every change and every skipped book.",
)
def fix(
    db_path: Path | None,
    storage_id: int,
    drm_vaults: tuple[str, ...],
    remove_ghosts: bool,
    dry_run: bool,
    yes: bool,
    json_output: bool,
    verbose: bool,
) -> None:
    """Repair authors, sorting, genres and series from the EPUB files themselves."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    path = db_path or DEFAULT_DB_PATH
    if not (yes or dry_run):
        click.confirm(_CONFIRM_TEXT.format(path=path), abort=True)

    options = FixOptions(
        storage_id=storage_id,
        drm_vaults=drm_vaults or DRM_VAULTS,
        remove_ghosts=remove_ghosts,
        dry_run=dry_run,
    )

    try:
        conn = open_device_library(path)
    except LibraryError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    library = DeviceLibrary(conn)
    try:
        stats = fix_library(library, options)
    except LibraryError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        console.print("[red]No changes were written.[/red]")
        raise SystemExit(1) from exc
    finally:
        library.close()

    if json_output:
        _print_json(stats, dry_run)
        return

    _print_rich(stats, dry_run)


def _print_json(stats: FixStatistics, dry_run: bool) -> None:
    """Print statistics as JSON."""
    data = {
        **stats.as_dict(),
        "anything_fixed": stats.anything_fixed,
        "dry_run": dry_run,
    }
    click.echo(json_lib.dumps(data, indent=2))


def _print_rich(stats: FixStatistics, dry_run: bool) -> None:
    """Print statistics with Rich formatting."""
    if not stats.anything_fixed:
        console.print("[green]The database seems to be ok. Nothing had to be fixed.[/green]")
    else:
        table = Table(title="Would fix" if dry_run else "Fixed")
        table.add_column("Field", style="bold")
        table.add_column("Count", justify="right")
        for label, key in _ROWS:
            table.add_row(label, str(getattr(stats, key)))
        console.print(table)

    if stats.drm_skipped:
        console.print(f"[dim]{stats.drm_skipped} DRM-protected book(s) skipped.[/dim]")

    if dry_run:
        console.print("[yellow]Dry run: no changes were written.[/yellow]")
