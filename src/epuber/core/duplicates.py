# ABOUTME: Duplicate detection over a caller-supplied list of ebook files.
# ABOUTME: Groups files whose normalized "title author" keys collide.

from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from epuber.metadata.parsing import normalize_for_comparison
from epuber.metadata.resolver import parse_filename
from epuber.metadata.types import TitleAuthor

EBOOK_EXTENSIONS: frozenset[str] = frozenset({".epub", ".mobi", ".azw3", ".azw", ".pdf"})


@dataclass
class DuplicateEntry:
    """One file in a duplicate group."""

    path: Path
    size: int


@dataclass
class DuplicateGroup:
    """Files sharing a normalized title/author key."""

    key: str
    entries: list[DuplicateEntry] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)


def duplicate_key(title_author: TitleAuthor) -> str:
    """Comparison key: title and author, lower-cased with punctuation removed."""
    return normalize_for_comparison(f"{title_author.title} {title_author.author}")


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


def find_duplicates(
    paths: Iterable[Path],
    resolver: Callable[[Path], TitleAuthor] = parse_filename,
) -> list[DuplicateGroup]:
    """Group files that look like the same book.

    Args:
        paths: Candidate files, typically from a library scan.
        resolver: Maps a path to a title/author pair. The filename heuristic
            is the fast default; resolve_title_author reads embedded metadata.

    Returns:
        Groups with at least two files, sorted by key. Files keep their
        input order within a group.
    """
    grouped: dict[str, list[Path]] = defaultdict(list)
    for path in paths:
        key = duplicate_key(resolver(path))
        if key:
            grouped[key].append(path)

    groups = []
    for key in sorted(grouped):
        members = grouped[key]
        if len(members) < 2:
            continue
        groups.append(
            DuplicateGroup(
                key=key,
                entries=[DuplicateEntry(path=p, size=_file_size(p)) for p in members],
            )
        )
    return groups
