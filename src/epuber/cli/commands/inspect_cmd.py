# ABOUTME: The `epuber inspect` command for viewing EPUB metadata.
# ABOUTME: Shows the package path, descriptive metadata, spine length, and cover presence.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from epuber.formats.epub import (
    EpubReadError,
    extract_cover,
    open_epub,
    read_epub_metadata,
    read_package,
)

console = Console()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(path: Path) -> None:
    """Show metadata extracted from an EPUB file."""
    try:
        with open_epub(path) as zf:
            package_path, opf = read_package(zf)
        meta = read_epub_metadata(path)
        cover = extract_cover(path)
    except EpubReadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title=str(path.name), show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Package", package_path)
    table.add_row("Title", meta.title)
    table.add_row("Author", meta.author or "[dim]unknown[/dim]")
    table.add_row("Language", ", ".join(meta.languages) or "[dim]unknown[/dim]")
    table.add_row("Publisher", meta.publisher or "[dim]unknown[/dim]")
    if meta.series:
        idx = meta.series_index
        table.add_row("Series", f"{meta.series} #{idx:g}" if idx is not None else meta.series)
    if meta.tags:
        table.add_row("Tags", ", ".join(sorted(meta.tags)))
    if meta.ids:
        table.add_row("Identifiers", ", ".join(f"{k}={v}" for k, v in meta.ids.items()))
    layout = opf.meta_properties("rendition:layout")
    if layout and layout[0].text:
        table.add_row("Layout", layout[0].text)
    table.add_row("Spine", str(len(opf.spine_documents())))
    table.add_row("Cover", f"yes ({len(cover)} bytes)" if cover else "no")

    console.print(table)
