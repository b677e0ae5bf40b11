# ABOUTME: Reads title, author, cover and full metadata out of existing EPUB files.
# ABOUTME: Locates the OPF through container.xml (or by extension) and resolves hrefs against it.

import io
import logging
import zipfile
import zlib
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

from lxml import etree

from epuber.formats.archive import list_entries, read_entry
from epuber.formats.opf import OpfDocument, OpfParseError
from epuber.metadata.parsing import parse_float
from epuber.metadata.types import BookMetadata, TitleAuthor

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
PACKAGE_EXTENSION = ".opf"

EpubSource = Path | bytes


class EpubReadError(Exception):
    """Raised when an EPUB file cannot be read or parsed."""


class PackageDocumentNotFound(EpubReadError):
    """Raised when an archive has no discoverable OPF package document."""


@contextmanager
def open_epub(source: EpubSource) -> Iterator[zipfile.ZipFile]:
    """Open an EPUB from a path or raw bytes, translating zip failures.

    Raises:
        EpubReadError: If the file is missing or is not a zip archive.
    """
    if isinstance(source, (bytes, bytearray)):
        target = io.BytesIO(source)
        label = "<bytes>"
    else:
        if not source.exists():
            raise EpubReadError(f"File not found: {source}")
        target = source
        label = str(source)

    try:
        zf = zipfile.ZipFile(target)
    except (zipfile.BadZipFile, OSError) as exc:
        raise EpubReadError(f"Failed to read EPUB: {label}: {exc}") from exc

    with zf:
        yield zf


def _read_entry(zf: zipfile.ZipFile, name: str) -> bytes | None:
    """read_entry that reports damaged entry data as EpubReadError."""
    try:
        return read_entry(zf, name)
    except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as exc:
        raise EpubReadError(f"Corrupt archive entry {name}: {exc}") from exc


def normalize_zip_path(path: str) -> str:
    """Resolve "." and ".." segments without climbing above the archive root."""
    parts: list[str] = []
    for part in path.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if parts:
                parts.pop()
        else:
            parts.append(part)
    return "/".join(parts)


def package_base_dir(package_path: str) -> str:
    """Directory prefix (with trailing slash) that manifest hrefs are relative to."""
    if "/" not in package_path:
        return ""
    return package_path.rsplit("/", 1)[0] + "/"


def _package_path_from_container(data: bytes) -> str | None:
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        logger.debug("Unparsable container.xml: %s", exc)
        return None
    for element in root.iter():
        if isinstance(element.tag, str) and etree.QName(element).localname == "rootfile":
            full_path = element.get("full-path")
            if full_path:
                return full_path
    return None


def find_package_path(zf: zipfile.ZipFile) -> str:
    """Locate the OPF package document inside an open archive.

    Uses META-INF/container.xml when it is present and names a rootfile.
    Otherwise falls back to the first entry ending in .opf in archive order,
    which is best-effort when an archive carries several.

    Raises:
        PackageDocumentNotFound: If neither route yields a candidate.
    """
    container = _read_entry(zf, CONTAINER_PATH)
    if container is not None:
        package_path = _package_path_from_container(container)
        if package_path:
            return package_path

    logger.debug("No usable container.xml, scanning entries for %s", PACKAGE_EXTENSION)
    for name in list_entries(zf):
        if name.lower().endswith(PACKAGE_EXTENSION):
            return name

    raise PackageDocumentNotFound("No package document found in archive")


def read_package(zf: zipfile.ZipFile) -> tuple[str, OpfDocument]:
    """Find and parse the package document of an open archive.

    Returns:
        (package_path, parsed document).

    Raises:
        PackageDocumentNotFound: If the OPF cannot be located.
        EpubReadError: If its entry is damaged or it is not well-formed XML.
    """
    package_path = find_package_path(zf)
    data = _read_entry(zf, package_path)
    if data is None:
        raise PackageDocumentNotFound(f"Package document missing from archive: {package_path}")
    try:
        return package_path, OpfDocument.parse(data)
    except OpfParseError as exc:
        raise EpubReadError(str(exc)) from exc


def read_title_author(source: EpubSource) -> TitleAuthor | None:
    """Embedded title and author of an EPUB.

    Authors are joined with "; ". Returns None when the package has neither a
    title nor a creator, so the caller can fall back to filename heuristics.

    Raises:
        EpubReadError: If the archive or its package document is unreadable.
    """
    with open_epub(source) as zf:
        _, opf = read_package(zf)

    title = opf.title
    author = "; ".join(opf.creators)
    if not title and not author:
        return None
    return TitleAuthor(title=title or "", author=author)


def extract_cover(source: EpubSource) -> bytes | None:
    """Raw bytes of the cover image, or None if the book declares none.

    The cover href is resolved against the package document's directory and
    normalized; if no entry exists there, the raw href is tried as-is.

    Raises:
        EpubReadError: If the archive or its package document is unreadable.
    """
    with open_epub(source) as zf:
        package_path, opf = read_package(zf)
        item = opf.resolve_cover_item()
        if item is None:
            return None

        resolved = normalize_zip_path(package_base_dir(package_path) + item.href)
        data = _read_entry(zf, resolved)
        if data is None:
            data = _read_entry(zf, item.href)
        if data is None:
            logger.debug("Cover %s declared but not present in archive", item.href)
        return data


def _parse_date(value: str | None) -> date | None:
    """Parse the leading YYYY-MM-DD of a date string, or None."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _get_identifiers(opf: OpfDocument) -> dict[str, str]:
    """Scheme-keyed identifiers, excluding the package's own unique identifier."""
    identifiers: dict[str, str] = {}
    for element in opf.metadata:
        if element.name != "dc:identifier" or not element.text or not element.text.strip():
            continue
        if opf.unique_identifier and element.attributes.get("id") == opf.unique_identifier:
            continue
        value = element.text.strip()
        scheme = element.attributes.get("opf:scheme") or element.attributes.get("scheme")
        if scheme:
            identifiers[scheme.lower()] = value
        elif ":" in value and not value.lower().startswith("urn:"):
            key, _, rest = value.partition(":")
            if key and rest:
                identifiers[key.strip().lower()] = rest.strip()
        else:
            identifiers["id"] = value
    return identifiers


def _get_series(opf: OpfDocument) -> tuple[str | None, float | None]:
    """Series name and index from calibre meta, else from an EPUB 3 collection."""
    series = opf.meta_content("calibre:series")
    index = parse_float(opf.meta_content("calibre:series_index"))
    if series:
        return series, index

    for collection in opf.meta_properties("belongs-to-collection"):
        if not collection.text or not collection.text.strip():
            continue
        collection_id = collection.attributes.get("id")
        if collection_id:
            positions = opf.meta_properties("group-position", refines=f"#{collection_id}")
            if positions:
                index = parse_float(positions[0].text)
        return collection.text.strip(), index
    return None, None


def read_epub_metadata(path: Path) -> BookMetadata:
    """Rebuild a BookMetadata record from an EPUB's package document.

    Args:
        path: Path to the EPUB file.

    Returns:
        BookMetadata populated with the fields present in the OPF. The title
        falls back to the file stem.

    Raises:
        EpubReadError: If the file cannot be read or parsed.
    """
    with open_epub(path) as zf:
        _, opf = read_package(zf)

    def first(local_name: str) -> str | None:
        values = opf.texts(local_name)
        return values[0] if values else None

    issued = opf.meta_properties("dcterms:issued")
    series, series_index = _get_series(opf)

    return BookMetadata(
        title=opf.title or path.stem,
        authors=opf.creators,
        publisher=first("publisher"),
        date=_parse_date(first("date")),
        issued=_parse_date(issued[0].text if issued else None),
        languages=opf.texts("language"),
        synopsis=first("description"),
        series=series,
        series_index=series_index,
        tags=set(opf.texts("subject")),
        ids=_get_identifiers(opf),
        rating=parse_float(opf.meta_content("calibre:rating")),
    )
