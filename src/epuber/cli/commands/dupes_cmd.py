# ABOUTME: The `epuber dupes` command for spotting likely duplicate books.
# ABOUTME: Groups the given files by normalized title and author and prints a Rich table.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from epuber.core.duplicates import EBOOK_EXTENSIONS, find_duplicates
from epuber.metadata.resolver import parse_filename, resolve_title_author

console = Console()


@click.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--deep", is_flag=True, help="Read embedded EPUB/PDF metadata instead of trusting filenames."
)
def dupes(files: tuple[Path, ...], deep: bool) -> None:
    """List groups of FILES that appear to be the same book."""
    candidates = [f for f in files if f.suffix.lower() in EBOOK_EXTENSIONS]
    resolver = resolve_title_author if deep else parse_filename
    groups = find_duplicates(candidates, resolver=resolver)

    if not groups:
        console.print("[green]No duplicates found.[/green]")
        return

    table = Table()
    table.add_column("Key", style="bold")
    table.add_column("File")
    table.add_column("Size", justify="right")
    for group in groups:
        for entry in group.entries:
            table.add_row(group.key, str(entry.path), f"{entry.size / 1_048_576:.2f} MB")

    console.print(table)
    console.print(f"{len(groups)} duplicate group(s)")
