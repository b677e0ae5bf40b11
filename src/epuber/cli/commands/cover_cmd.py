# ABOUTME: The `epuber cover` command for extracting an EPUB's cover image.
# ABOUTME: Writes the raw image bytes as stored in the archive.

from pathlib import Path

import click
from rich.console import Console

from epuber.formats.epub import EpubReadError, extract_cover

console = Console()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
def cover(path: Path, output: Path) -> None:
    """Save the cover image of the EPUB at PATH to OUTPUT."""
    try:
        data = extract_cover(path)
    except EpubReadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    if data is None:
        console.print(f"[yellow]No cover found in {path.name}.[/yellow]")
        raise SystemExit(1)

    output.write_bytes(data)
    console.print(f"Wrote {len(data)} bytes to {output}")
