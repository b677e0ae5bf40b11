# ABOUTME: The `epuber convert` command for turning a PDF into a fixed-layout EPUB.
# ABOUTME: Collects metadata from options and reports rendering progress with a Rich progress bar.

from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from epuber.cli.options import ISO_DATE, dpi_option
from epuber.config import DEFAULT_LANGUAGE
from epuber.core.converter import convert_pdf_to_epub
from epuber.core.errors import ConversionError
from epuber.metadata.parsing import blank_to_null, parse_float, parse_key_value, parse_list
from epuber.metadata.types import BookMetadata

console = Console()


class RichProgressSink:
    """ProgressSink that drives a single Rich progress task."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task = progress.add_task("starting", total=None)

    def on_message(self, text: str) -> None:
        self._progress.update(self._task, description=text)

    def on_progress(self, done: int, total: int) -> None:
        self._progress.update(self._task, completed=done, total=max(total, 1))


def _split_all(values: tuple[str, ...], separator: str) -> list[str]:
    items: list[str] = []
    for value in values:
        items.extend(parse_list(value, separator))
    return items


@click.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--title", default=None, help="Book title.")
@click.option("--author", "authors", multiple=True, help="Author; repeat or separate with ';'.")
@click.option("--series", default=None, help="Series name.")
@click.option("--series-index", default=None, help="Position in the series (e.g. 1.5).")
@click.option("--publisher", default=None, help="Publisher name.")
@click.option("--date", "pub_date", type=ISO_DATE, default=None, help="Publication date.")
@click.option("--issued", type=ISO_DATE, default=None, help="Issue date (dcterms:issued).")
@click.option(
    "--language", "languages", multiple=True, help="Language code; repeat or separate with ','."
)
@click.option("--tag", "tags", multiple=True, help="Subject tag; repeat or separate with ','.")
@click.option("--id", "ids", multiple=True, help="Identifier as scheme:value, e.g. isbn:978...")
@click.option("--rating", type=click.FloatRange(0, 5), default=None, help="Rating from 0 to 5.")
@click.option("--synopsis", default=None, help="Synopsis text.")
@click.option(
    "--cover",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Cover image; defaults to the first page.",
)
@click.option("--split-spreads", is_flag=True, help="Split wide two-page spreads in half.")
@dpi_option
def convert(
    pdf: Path,
    output: Path,
    title: str | None,
    authors: tuple[str, ...],
    series: str | None,
    series_index: str | None,
    publisher: str | None,
    pub_date: date | None,
    issued: date | None,
    languages: tuple[str, ...],
    tags: tuple[str, ...],
    ids: tuple[str, ...],
    rating: float | None,
    synopsis: str | None,
    cover: Path | None,
    split_spreads: bool,
    dpi: int,
) -> None:
    """Convert PDF into a fixed-layout EPUB written to OUTPUT."""
    identifiers: dict[str, str] = {}
    for value in ids:
        identifiers.update(parse_key_value(value))

    metadata = BookMetadata(
        title=title or pdf.stem,
        authors=_split_all(authors, ";"),
        publisher=blank_to_null(publisher),
        date=pub_date,
        issued=issued,
        languages=_split_all(languages, ",") or [DEFAULT_LANGUAGE],
        synopsis=blank_to_null(synopsis),
        series=blank_to_null(series),
        series_index=parse_float(series_index),
        tags=set(_split_all(tags, ",")),
        ids=identifiers,
        rating=rating,
        cover_image=cover,
    )

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    )
    try:
        with progress:
            convert_pdf_to_epub(
                pdf,
                output,
                metadata,
                split_spreads=split_spreads,
                dpi=dpi,
                progress=RichProgressSink(progress),
            )
    except (ConversionError, OSError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    console.print(f"[green]Created[/green] {output}")
