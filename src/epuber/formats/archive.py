# ABOUTME: Zip container writer and reader for EPUB archives.
# ABOUTME: Writes the stored "mimetype" entry first and refuses zip-slip paths on extraction.

import logging
import os
import shutil
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)

MIMETYPE_NAME = "mimetype"
EPUB_MIMETYPE = b"application/epub+zip"

# Fixed timestamp keeps the mimetype header byte-identical across builds
_MIMETYPE_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class ArchiveError(Exception):
    """Raised when an archive cannot be built from the given source."""


def _mimetype_info() -> zipfile.ZipInfo:
    """ZipInfo for the uncompressed mimetype entry."""
    info = zipfile.ZipInfo(MIMETYPE_NAME, date_time=_MIMETYPE_DATE_TIME)
    info.compress_type = zipfile.ZIP_STORED
    info.external_attr = 0o644 << 16
    return info


def _iter_content_files(source_dir: Path) -> list[Path]:
    """All regular files under source_dir except the root mimetype file."""
    files = []
    for path in sorted(source_dir.rglob("*")):
        if not path.is_file():
            continue
        if path.parent == source_dir and path.name == MIMETYPE_NAME:
            continue
        files.append(path)
    return files


def pack_directory(source_dir: Path, out_file: Path) -> Path:
    """Zip a prepared EPUB working tree into out_file.

    The first entry is always "mimetype", stored without compression and
    containing exactly "application/epub+zip"; zipfile derives its CRC-32
    and sizes from those literal bytes. A mimetype file present in
    source_dir is ignored in favour of the literal. Everything else is
    deflated and named by its forward-slash path relative to source_dir.

    The archive is written to a sibling temporary file and moved over
    out_file only once complete, so a failure never leaves a partial EPUB
    and a pre-existing out_file is replaced atomically.

    Args:
        source_dir: Root of the working tree (contains META-INF/, OEBPS/).
        out_file: Destination .epub path.

    Returns:
        out_file.

    Raises:
        ArchiveError: If source_dir is not a directory.
        OSError: On any read/write failure.
    """
    if not source_dir.is_dir():
        raise ArchiveError(f"Not a directory: {source_dir}")

    partial = out_file.with_name(out_file.name + ".part")
    try:
        with zipfile.ZipFile(partial, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(_mimetype_info(), EPUB_MIMETYPE)
            for path in _iter_content_files(source_dir):
                arcname = path.relative_to(source_dir).as_posix()
                zf.write(path, arcname)
        os.replace(partial, out_file)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise

    logger.debug("Packed %s into %s", source_dir, out_file)
    return out_file


def unpack(zip_file: Path, dest_dir: Path) -> list[Path]:
    """Extract every entry of zip_file under dest_dir.

    Any entry whose normalized destination would fall outside dest_dir
    (absolute names, "../" traversal) is skipped and never written.

    Returns:
        The paths of the files that were written, in archive order.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    root = dest_dir.resolve()
    written: list[Path] = []

    with zipfile.ZipFile(zip_file) as zf:
        for info in zf.infolist():
            target = (root / info.filename).resolve()
            if not target.is_relative_to(root):
                logger.warning("Skipping entry outside destination: %s", info.filename)
                continue

            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            written.append(target)

    return written


def read_entry(zf: zipfile.ZipFile, name: str) -> bytes | None:
    """Read a single entry by exact name, or None if the archive lacks it."""
    try:
        info = zf.getinfo(name)
    except KeyError:
        return None
    if info.is_dir():
        return None
    return zf.read(info)


def list_entries(zf: zipfile.ZipFile) -> list[str]:
    """Names of all file (non-directory) entries in archive order."""
    return [info.filename for info in zf.infolist() if not info.is_dir()]
