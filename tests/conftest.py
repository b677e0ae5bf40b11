# ABOUTME: Shared pytest fixtures for Epuber tests.
# ABOUTME: Builds PDFs with PyMuPDF, EPUBs with ebooklib, and hand-made archives with zipfile.

import io
import zipfile
from collections.abc import Callable
from pathlib import Path

import fitz
import pytest
from ebooklib import epub
from PIL import Image

CONTAINER_XML = """<?xml version="1.0" encoding="utf-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


def jpeg_bytes(size: tuple[int, int] = (60, 90), color: str = "blue") -> bytes:
    """Encode a solid-color JPEG in memory."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, "JPEG")
    return buf.getvalue()


@pytest.fixture
def make_pdf(tmp_path: Path) -> Callable[..., Path]:
    """Factory that writes a PDF with one page per (width, height) in points."""

    def _make(
        name: str,
        sizes: list[tuple[float, float]],
        title: str | None = None,
        author: str | None = None,
    ) -> Path:
        doc = fitz.open()
        for number, (width, height) in enumerate(sizes, start=1):
            page = doc.new_page(width=width, height=height)
            page.insert_text((20, 40), f"Page {number}", fontsize=18)
        if title or author:
            doc.set_metadata({"title": title or "", "author": author or ""})
        path = tmp_path / name
        doc.save(str(path))
        doc.close()
        return path

    return _make


@pytest.fixture
def sample_pdf(make_pdf: Callable[..., Path]) -> Path:
    """Three portrait pages of 200x300 points."""
    return make_pdf("sample.pdf", [(200, 300)] * 3)


@pytest.fixture
def spread_pdf(make_pdf: Callable[..., Path]) -> Path:
    """Portrait, wide spread (500x300, ratio 1.67), portrait."""
    return make_pdf("spread.pdf", [(200, 300), (500, 300), (200, 300)])


@pytest.fixture
def cover_png(tmp_path: Path) -> Path:
    """A 120x180 PNG to use as a custom cover."""
    path = tmp_path / "front.png"
    Image.new("RGB", (120, 180), "red").save(path, "PNG")
    return path


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """Create a minimal valid EPUB with known metadata and a cover, via ebooklib."""
    book = epub.EpubBook()

    book.set_identifier("test-isbn-978-0-123456-47-2")
    book.set_title("The Name of the Rose")
    book.set_language("en")
    book.add_author("Umberto Eco")
    book.add_author("William Weaver")
    book.add_metadata("DC", "publisher", "Harcourt")
    book.set_cover("cover.jpg", jpeg_bytes())

    chapter = epub.EpubHtml(title="Chapter 1", file_name="chap01.xhtml", lang="en")
    chapter.content = b"<html><body><h1>Chapter 1</h1><p>Content.</p></body></html>"
    book.add_item(chapter)

    book.toc = [epub.Link("chap01.xhtml", "Chapter 1", "chap01")]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]

    filepath = tmp_path / "name_of_the_rose.epub"
    epub.write_epub(str(filepath), book)
    return filepath


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """Create a corrupt file that is not a valid EPUB."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath


@pytest.fixture
def make_epub(tmp_path: Path) -> Callable[[str, dict[str, bytes | str]], Path]:
    """Factory that zips the given entries, in order, into tmp_path/name."""

    def _make(name: str, entries: dict[str, bytes | str]) -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for entry_name, content in entries.items():
                zf.writestr(entry_name, content)
        return path

    return _make


def opf_xml(metadata: str = "", manifest: str = "", spine: str = "") -> str:
    """A package document wrapping the given inner markup."""
    return f"""<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="uid">urn:uuid:0000</dc:identifier>
    {metadata}
  </metadata>
  <manifest>
    {manifest}
  </manifest>
  <spine>
    {spine}
  </spine>
</package>
"""


@pytest.fixture
def opf_markup() -> Callable[..., str]:
    """Builder for package documents with custom metadata, manifest, and spine."""
    return opf_xml


@pytest.fixture
def container_markup() -> Callable[[str], str]:
    """Builder for META-INF/container.xml pointing at a given OPF path."""
    return lambda path: CONTAINER_XML.format(path=path)


@pytest.fixture
def jpeg_data() -> Callable[..., bytes]:
    """Builder for in-memory JPEG bytes."""
    return jpeg_bytes


@pytest.fixture
def damaged_epub(tmp_path: Path) -> Path:
    """A readable archive whose deflated package document is garbled."""
    path = tmp_path / "Dune - Frank Herbert.epub"
    opf = opf_xml(metadata="<dc:title>Dune</dc:title><dc:creator>Frank Herbert</dc:creator>")
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(path="content.opf"))
        zf.writestr("content.opf", opf)
        info = zf.getinfo("content.opf")

    raw = bytearray(path.read_bytes())
    name_len = int.from_bytes(raw[info.header_offset + 26 : info.header_offset + 28], "little")
    extra_len = int.from_bytes(raw[info.header_offset + 28 : info.header_offset + 30], "little")
    start = info.header_offset + 30 + name_len + extra_len
    for i in range(start, start + info.compress_size):
        raw[i] ^= 0xFF
    path.write_bytes(bytes(raw))
    return path
