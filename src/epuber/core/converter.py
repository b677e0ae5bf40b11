# ABOUTME: Orchestrates PDF to fixed-layout EPUB 3 conversion.
# ABOUTME: Renders pages, writes markup and the OPF into a temp tree, then zips it.

import logging
import os
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from PIL import Image

from epuber.config import DEFAULT_DPI, DEFAULT_LANGUAGE, JPEG_QUALITY, ConversionOptions
from epuber.core.errors import ConversionInputError
from epuber.core.progress import LoggingProgress, ProgressSink
from epuber.core.renderer import JPEG_MEDIA_TYPE, PageImage, PdfPageRenderer
from epuber.formats.archive import EPUB_MIMETYPE, MIMETYPE_NAME, pack_directory
from epuber.formats.markup import container_xml, fixed_page_xhtml, nav_xhtml, synopsis_xhtml
from epuber.formats.opf import (
    COVER_PAGE_HREF,
    NAV_HREF,
    SYNOPSIS_HREF,
    build_fixed_layout_package,
)
from epuber.metadata.types import BookMetadata

logger = logging.getLogger(__name__)

PACKAGE_PATH = "OEBPS/content.opf"
COVER_IMAGE_NAME = "cover.jpg"


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _check_inputs(pdf_path: Path, output_path: Path, metadata: BookMetadata) -> None:
    """Reject unusable paths before any work is done."""
    if not pdf_path.is_file():
        raise ConversionInputError(f"PDF not found: {pdf_path}")
    if not os.access(pdf_path, os.R_OK):
        raise ConversionInputError(f"PDF is not readable: {pdf_path}")
    if output_path.is_dir():
        raise ConversionInputError(f"Output path is a directory: {output_path}")
    parent = output_path.parent
    if not parent.is_dir():
        raise ConversionInputError(f"Output directory does not exist: {parent}")
    if not os.access(parent, os.W_OK):
        raise ConversionInputError(f"Output directory is not writable: {parent}")
    if metadata.cover_image is not None and not metadata.cover_image.is_file():
        raise ConversionInputError(f"Cover image not found: {metadata.cover_image}")


class EpubAssembler:
    """Builds a fixed-layout EPUB 3 from a PDF.

    Each call to convert() works in its own temporary directory, so one
    assembler can serve concurrent conversions from different threads.
    """

    def __init__(self, options: ConversionOptions | None = None) -> None:
        self.options = options or ConversionOptions()

    def convert(
        self,
        pdf_path: Path,
        output_path: Path,
        metadata: BookMetadata | None = None,
        progress: ProgressSink | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> Path:
        """Convert pdf_path into an EPUB at output_path, replacing any existing file.

        Args:
            pdf_path: Source PDF.
            output_path: Destination .epub; its directory must exist.
            metadata: Descriptive record; defaults to an untitled book.
            progress: Optional observer for messages and page counts; defaults
                to logging them.
            cancel_check: Polled before each page; returning True aborts.

        Returns:
            output_path.

        Raises:
            ConversionInputError: For unusable paths, before any work is done.
            ConversionContentError: If the PDF has no renderable pages.
            ConversionFormatError: If the PDF cannot be opened or rendered.
            ConversionCancelled: If cancel_check asked to stop.
            OSError: On filesystem failures. No partial output is left behind.
        """
        metadata = metadata or BookMetadata()
        progress = progress or LoggingProgress()
        _check_inputs(pdf_path, output_path, metadata)

        work = Path(tempfile.mkdtemp(prefix="epuber_"))
        logger.debug("Working directory: %s", work)
        try:
            self._assemble(work, pdf_path, metadata, progress, cancel_check)
            progress.on_message("packaging EPUB")
            pack_directory(work, output_path)
        finally:
            shutil.rmtree(work, ignore_errors=True)
            logger.debug("Removed working directory %s", work)

        progress.on_message(f"created {output_path.name}")
        return output_path

    def _assemble(
        self,
        work: Path,
        pdf_path: Path,
        metadata: BookMetadata,
        progress: ProgressSink,
        cancel_check: Callable[[], bool] | None,
    ) -> None:
        oebps = work / "OEBPS"
        images_dir = oebps / "images"
        xhtml_dir = oebps / "xhtml"

        renderer = PdfPageRenderer(
            images_dir,
            dpi=self.options.dpi,
            split_spreads=self.options.split_spreads,
            jpeg_quality=self.options.jpeg_quality,
        )
        pages = renderer.render(pdf_path, progress, cancel_check)

        cover = self._prepare_cover(metadata.cover_image, images_dir) or pages[0]
        cover_href = f"images/{cover.name}"
        language = metadata.languages_or_default(self.options.language)[0]

        _write_text(
            xhtml_dir / "cover.xhtml",
            fixed_page_xhtml("Cover", f"../{cover_href}", cover.width, cover.height),
        )
        has_synopsis = metadata.has_synopsis
        if has_synopsis:
            _write_text(xhtml_dir / "sinopsis.xhtml", synopsis_xhtml(metadata.synopsis, language))

        page_documents = []
        for number, page in enumerate(pages, start=1):
            name = f"page_{number:04d}.xhtml"
            _write_text(
                xhtml_dir / name,
                fixed_page_xhtml(f"Page {number}", f"../images/{page.name}", page.width, page.height),
            )
            page_documents.append(f"xhtml/{name}")

        nav_entries = [(COVER_PAGE_HREF, "Cover")]
        if has_synopsis:
            nav_entries.append((SYNOPSIS_HREF, "Synopsis"))
        nav_entries.extend(
            (href, f"Page {number}") for number, href in enumerate(page_documents, start=1)
        )
        _write_text(oebps / NAV_HREF, nav_xhtml(nav_entries, language))

        package = build_fixed_layout_package(
            metadata,
            pages,
            page_documents,
            cover_href,
            cover_media_type=cover.media_type,
            has_synopsis=has_synopsis,
            default_language=self.options.language,
        )
        _write_text(work / PACKAGE_PATH, package.to_xml())
        _write_text(work / "META-INF" / "container.xml", container_xml(PACKAGE_PATH))
        (work / MIMETYPE_NAME).write_bytes(EPUB_MIMETYPE)

    def _prepare_cover(self, cover_image: Path | None, images_dir: Path) -> PageImage | None:
        """Re-encode a user-supplied cover as images/cover.jpg.

        Returns None when there is no cover or it cannot be decoded, in which
        case the first rendered page serves as the cover.
        """
        if cover_image is None:
            return None
        try:
            with Image.open(cover_image) as img:
                rgb = img.convert("RGB")
        except OSError as exc:
            logger.warning("Cannot read cover image %s, using first page: %s", cover_image, exc)
            return None
        rgb.save(images_dir / COVER_IMAGE_NAME, "JPEG", quality=self.options.jpeg_quality)
        return PageImage(
            name=COVER_IMAGE_NAME, width=rgb.width, height=rgb.height, media_type=JPEG_MEDIA_TYPE
        )


def convert_pdf_to_epub(
    pdf_path: Path,
    output_path: Path,
    metadata: BookMetadata | None = None,
    split_spreads: bool = False,
    dpi: int = DEFAULT_DPI,
    progress: ProgressSink | None = None,
    *,
    cancel_check: Callable[[], bool] | None = None,
    language: str = DEFAULT_LANGUAGE,
    jpeg_quality: int = JPEG_QUALITY,
) -> Path:
    """Convert a PDF to a fixed-layout EPUB. See EpubAssembler.convert.

    dpi is clamped into [90, 450].
    """
    options = ConversionOptions(
        split_spreads=split_spreads, dpi=dpi, language=language, jpeg_quality=jpeg_quality
    )
    return EpubAssembler(options).convert(pdf_path, output_path, metadata, progress, cancel_check)
