# ABOUTME: Renders PDF pages to JPEG files with PyMuPDF and Pillow.
# ABOUTME: Optionally splits wide two-page spreads into left and right halves.

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import fitz
from PIL import Image

from epuber.config import DEFAULT_DPI, JPEG_QUALITY, SPREAD_RATIO, clamp_dpi
from epuber.core.errors import (
    ConversionCancelled,
    ConversionContentError,
    ConversionFormatError,
)
from epuber.core.progress import NullProgress, ProgressSink

logger = logging.getLogger(__name__)

JPEG_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class PageImage:
    """One rendered page (or half of a split spread) stored under images/."""

    name: str
    width: int
    height: int
    media_type: str = JPEG_MEDIA_TYPE


def is_spread(width: int, height: int, ratio: float = SPREAD_RATIO) -> bool:
    """Whether a page this shape depicts two facing pages."""
    return height > 0 and width / height > ratio


def split_spread(image: Image.Image) -> tuple[Image.Image, Image.Image]:
    """Cut an image at its horizontal midpoint.

    Both halves keep the full height; the right half takes the extra column
    when the width is odd.
    """
    width, height = image.size
    mid = width // 2
    left = image.crop((0, 0, mid, height))
    right = image.crop((mid, 0, width, height))
    return left, right


class PdfPageRenderer:
    """Rasterizes each PDF page in order and writes it to images_dir as JPEG.

    Files are named from the 1-based page number (p001.jpg, p002_L.jpg,
    p002_R.jpg, ...) so lexical order matches reading order.
    """

    def __init__(
        self,
        images_dir: Path,
        *,
        dpi: int = DEFAULT_DPI,
        split_spreads: bool = False,
        jpeg_quality: int = JPEG_QUALITY,
    ) -> None:
        self.images_dir = images_dir
        self.dpi = clamp_dpi(dpi)
        self.split_spreads = split_spreads
        self.jpeg_quality = jpeg_quality

    def render(
        self,
        pdf_path: Path,
        progress: ProgressSink | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[PageImage]:
        """Open pdf_path and render every page.

        Raises:
            ConversionFormatError: If the file is not a PDF the engine can open.
            ConversionContentError: If no page was rendered.
            ConversionCancelled: If cancel_check returned true between pages.
        """
        try:
            doc = fitz.open(str(pdf_path))
        except (RuntimeError, ValueError) as exc:
            raise ConversionFormatError(f"Cannot open PDF: {pdf_path}: {exc}") from exc

        try:
            if not doc.is_pdf:
                raise ConversionFormatError(f"Not a PDF document: {pdf_path}")
            return self.render_document(doc, progress, cancel_check)
        finally:
            doc.close()

    def render_document(
        self,
        doc: fitz.Document,
        progress: ProgressSink | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[PageImage]:
        """Render all pages of an already opened document."""
        progress = progress or NullProgress()
        self.images_dir.mkdir(parents=True, exist_ok=True)

        total = doc.page_count
        pages: list[PageImage] = []
        for index in range(total):
            if cancel_check is not None and cancel_check():
                raise ConversionCancelled(f"Cancelled before page {index + 1}/{total}")

            progress.on_message(f"rendering page {index + 1}/{total}")
            try:
                image = self._rasterize(doc[index])
            except RuntimeError as exc:
                raise ConversionFormatError(
                    f"Failed to render page {index + 1}/{total}: {exc}"
                ) from exc

            pages.extend(self._store(image, index + 1))
            progress.on_progress(index + 1, total)

        if not pages:
            raise ConversionContentError("no pages could be rendered")
        return pages

    def _rasterize(self, page: fitz.Page) -> Image.Image:
        pix = page.get_pixmap(dpi=self.dpi, colorspace=fitz.csRGB, alpha=False)
        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

    def _store(self, image: Image.Image, page_number: int) -> list[PageImage]:
        width, height = image.size
        if self.split_spreads and is_spread(width, height):
            left, right = split_spread(image)
            logger.debug("Page %d is a spread (%dx%d), splitting", page_number, width, height)
            return [
                self._save(left, f"p{page_number:03d}_L.jpg"),
                self._save(right, f"p{page_number:03d}_R.jpg"),
            ]
        return [self._save(image, f"p{page_number:03d}.jpg")]

    def _save(self, image: Image.Image, name: str) -> PageImage:
        image.save(self.images_dir / name, "JPEG", quality=self.jpeg_quality)
        logger.debug("Wrote %s (%dx%d)", name, image.width, image.height)
        return PageImage(name=name, width=image.width, height=image.height)
