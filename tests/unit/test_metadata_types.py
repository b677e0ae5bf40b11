# ABOUTME: Unit tests for metadata data types and conversion options.
# ABOUTME: Validates BookMetadata defaults, rating quantization, and DPI clamping.

from pathlib import Path

import pytest

from epuber.config import ConversionOptions, clamp_dpi
from epuber.metadata import BookMetadata, TitleAuthor, quantize_rating


class TestBookMetadata:
    """Tests for BookMetadata construction and properties."""

    def test_defaults(self) -> None:
        """A bare record has a placeholder title and empty collections."""
        meta = BookMetadata()
        assert meta.title == "(Untitled)"
        assert meta.authors == []
        assert meta.languages == []
        assert meta.tags == set()
        assert meta.ids == {}
        assert meta.cover_image is None

    def test_blank_title_gets_placeholder(self) -> None:
        """Whitespace-only titles are replaced by the placeholder."""
        assert BookMetadata(title="   ").title == "(Untitled)"

    def test_title_is_stripped(self) -> None:
        """Surrounding whitespace is removed from the title."""
        assert BookMetadata(title="  Dune \n").title == "Dune"

    def test_author_joins_authors(self) -> None:
        """The author property joins every author with '; '."""
        meta = BookMetadata(title="T", authors=["Terry Pratchett", "Neil Gaiman"])
        assert meta.author == "Terry Pratchett; Neil Gaiman"

    def test_author_empty_without_authors(self) -> None:
        """No authors gives an empty author string."""
        assert BookMetadata().author == ""

    def test_has_synopsis(self) -> None:
        """Only a non-blank synopsis counts."""
        assert BookMetadata(synopsis="A tale.").has_synopsis
        assert not BookMetadata(synopsis="  ").has_synopsis
        assert not BookMetadata().has_synopsis

    def test_languages_or_default(self) -> None:
        """Blank languages are dropped; an empty list falls back to the default."""
        assert BookMetadata(languages=[" fr ", ""]).languages_or_default() == ["fr"]
        assert BookMetadata().languages_or_default("de") == ["de"]

    def test_rating_is_quantized(self) -> None:
        """Ratings are clamped and rounded to half stars on construction."""
        assert BookMetadata(rating=4.3).rating == 4.5
        assert BookMetadata(rating=9).rating == 5.0

    def test_cover_image_path(self, tmp_path: Path) -> None:
        """A cover path is stored as given."""
        cover = tmp_path / "c.png"
        assert BookMetadata(cover_image=cover).cover_image == cover

    def test_independent_defaults(self) -> None:
        """Mutable defaults are not shared between instances."""
        first = BookMetadata()
        first.authors.append("Someone")
        first.tags.add("x")
        second = BookMetadata()
        assert second.authors == []
        assert second.tags == set()


class TestQuantizeRating:
    """Tests for quantize_rating."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, None), (-1, 0.0), (0, 0.0), (4.2, 4.0), (4.3, 4.5), (5, 5.0), (7.5, 5.0)],
    )
    def test_quantize(self, value: float | None, expected: float | None) -> None:
        """Values are clamped into [0, 5] and rounded to the nearest half."""
        assert quantize_rating(value) == expected


class TestTitleAuthor:
    """Tests for TitleAuthor."""

    def test_display_with_author(self) -> None:
        """Display shows 'Title - Author'."""
        assert TitleAuthor("Dune", "Frank Herbert").display == "Dune - Frank Herbert"

    def test_display_without_author(self) -> None:
        """Display is just the title when the author is unknown."""
        assert TitleAuthor("Dune").display == "Dune"


class TestConversionOptions:
    """Tests for ConversionOptions and clamp_dpi."""

    def test_defaults(self) -> None:
        """Defaults are 150 DPI, no splitting, English."""
        options = ConversionOptions()
        assert options.dpi == 150
        assert options.split_spreads is False
        assert options.language == "en"

    @pytest.mark.parametrize(("dpi", "expected"), [(50, 90), (90, 90), (300, 300), (451, 450)])
    def test_dpi_clamped(self, dpi: int, expected: int) -> None:
        """DPI is clamped into [90, 450] on construction."""
        assert ConversionOptions(dpi=dpi).dpi == expected
        assert clamp_dpi(dpi) == expected
