# ABOUTME: Core metadata data structures for ebook metadata representation.
# ABOUTME: BookMetadata flows into the OPF builder and back out of the EPUB introspector.

import datetime
from dataclasses import dataclass, field
from pathlib import Path

from epuber.config import DEFAULT_LANGUAGE, DEFAULT_TITLE
from epuber.metadata.parsing import default_if_blank

MAX_RATING = 5.0


def quantize_rating(rating: float | None) -> float | None:
    """Clamp a rating into [0, 5] and round it to the nearest half star."""
    if rating is None:
        return None
    clamped = max(0.0, min(MAX_RATING, float(rating)))
    return round(clamped * 2) / 2


@dataclass
class BookMetadata:
    """Descriptive metadata for one title.

    This is the record the converter serializes into the OPF package
    document and the introspector rebuilds from an existing EPUB. Only the
    title is required, and even that has a placeholder default.
    """

    title: str = DEFAULT_TITLE
    authors: list[str] = field(default_factory=list)
    publisher: str | None = None
    date: datetime.date | None = None
    issued: datetime.date | None = None
    languages: list[str] = field(default_factory=list)
    synopsis: str | None = None
    series: str | None = None
    series_index: float | None = None
    tags: set[str] = field(default_factory=set)
    ids: dict[str, str] = field(default_factory=dict)
    rating: float | None = None
    cover_image: Path | None = None

    def __post_init__(self) -> None:
        self.title = default_if_blank(self.title, DEFAULT_TITLE)
        self.rating = quantize_rating(self.rating)

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return "; ".join(self.authors) if self.authors else ""

    @property
    def has_synopsis(self) -> bool:
        """Whether a non-blank synopsis is present."""
        return bool(self.synopsis and self.synopsis.strip())

    def languages_or_default(self, default: str = DEFAULT_LANGUAGE) -> list[str]:
        """Non-blank languages in order, or a single default when there are none."""
        cleaned = [lang.strip() for lang in self.languages if lang and lang.strip()]
        return cleaned or [default]


@dataclass
class TitleAuthor:
    """Title/author pair as shown in library listings."""

    title: str
    author: str = ""

    @property
    def display(self) -> str:
        """'Title - Author', or just the title when the author is unknown."""
        if not self.author:
            return self.title
        return f"{self.title} - {self.author}"
