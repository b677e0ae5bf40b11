# ABOUTME: Two-stage title/author resolution for library files.
# ABOUTME: Tries metadata embedded in the EPUB or PDF first, then the "Title - Author.ext" filename.

import logging
import re
from pathlib import Path

import fitz

from epuber.formats.epub import EpubReadError, read_title_author
from epuber.metadata.types import TitleAuthor

logger = logging.getLogger(__name__)

# Hyphen with whitespace on both sides; "Spider-Man" stays intact
_TITLE_AUTHOR_SEPARATOR = re.compile(r"\s+-\s+")


def parse_filename(path: Path) -> TitleAuthor:
    """Guess title and author from a "Title - Author.ext" filename.

    Only the first separator splits, so "A - B - C.epub" gives title "A" and
    author "B - C". Without a separator the whole stem is the title.
    """
    stem = path.stem
    parts = _TITLE_AUTHOR_SEPARATOR.split(stem, maxsplit=1)
    if len(parts) == 2:
        return TitleAuthor(title=parts[0].strip(), author=parts[1].strip())
    return TitleAuthor(title=stem.strip())


def read_pdf_title_author(path: Path) -> TitleAuthor | None:
    """Title and author from a PDF's document information, if either is set."""
    try:
        with fitz.open(str(path)) as doc:
            info = doc.metadata or {}
    except (RuntimeError, ValueError) as exc:
        logger.debug("Cannot read PDF info from %s: %s", path, exc)
        return None

    title = (info.get("title") or "").strip()
    author = (info.get("author") or "").strip()
    if not title and not author:
        return None
    return TitleAuthor(title=title, author=author)


def read_embedded_title_author(path: Path) -> TitleAuthor | None:
    """Structured title/author for EPUB and PDF files; None for anything else."""
    suffix = path.suffix.lower()
    if suffix == ".epub":
        try:
            return read_title_author(path)
        except EpubReadError as exc:
            logger.debug("No embedded metadata in %s: %s", path, exc)
            return None
    if suffix == ".pdf":
        return read_pdf_title_author(path)
    return None


def resolve_title_author(path: Path) -> TitleAuthor:
    """Best title/author for a file: embedded metadata, else the filename.

    A blank embedded title is filled from the filename so the result always
    has something to display.
    """
    embedded = read_embedded_title_author(path)
    if embedded is None:
        return parse_filename(path)
    if not embedded.title:
        return TitleAuthor(title=parse_filename(path).title, author=embedded.author)
    return embedded
