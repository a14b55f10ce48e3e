# ABOUTME: The `metamend inspect` command for viewing EPUB package metadata.
# ABOUTME: Shows the authors, sort string, genre and series a fix pass would use.

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from metamend.formats.epub import EpubReadError, read_epub_metadata

console = Console()


@click.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
def inspect(path: Path) -> None:
    """Show metadata extracted from an EPUB file."""
    try:
        meta = read_epub_metadata(path)
    except EpubReadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title=escape(path.name), show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Author", escape(meta.author) or "[dim]unknown[/dim]")
    table.add_row("Author Sort", escape(meta.author_sort) or "[dim]none[/dim]")
    table.add_row("First Letter", escape(meta.first_letter) or "[dim]none[/dim]")
    for number, author in enumerate(meta.authors, start=1):
        sort_key = escape(author.sort_key or "-")
        table.add_row(f"  {number}.", f"{escape(author.name)} [dim]({sort_key})[/dim]")
    table.add_row("Genre", escape(meta.genre) or "[dim]none[/dim]")
    table.add_row("Series", escape(meta.series.name) or "[dim]none[/dim]")
    if meta.has_series:
        table.add_row("Series Index", str(meta.series.index))

    console.print(table)
