# ABOUTME: Unit tests for the EPUB zip container writer and reader.
# ABOUTME: Covers mimetype placement, atomic replacement, and zip-slip protection.

import os
import zipfile
from pathlib import Path

import pytest

from epuber.formats import archive
from epuber.formats.archive import (
    EPUB_MIMETYPE,
    ArchiveError,
    list_entries,
    pack_directory,
    read_entry,
    unpack,
)


@pytest.fixture
def work_tree(tmp_path: Path) -> Path:
    """A small EPUB-shaped working tree with a stray mimetype file."""
    root = tmp_path / "work"
    (root / "META-INF").mkdir(parents=True)
    (root / "OEBPS" / "images").mkdir(parents=True)
    (root / "mimetype").write_text("text/plain")
    (root / "META-INF" / "container.xml").write_text("<container/>")
    (root / "OEBPS" / "content.opf").write_text("<package/>")
    (root / "OEBPS" / "images" / "p001.jpg").write_bytes(b"\xff\xd8fake")
    return root


class TestPackDirectory:
    """Tests for pack_directory."""

    def test_mimetype_is_first_entry(self, work_tree: Path, tmp_path: Path) -> None:
        """The first entry in the archive is named mimetype."""
        out = pack_directory(work_tree, tmp_path / "book.epub")
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist()[0] == "mimetype"

    def test_mimetype_is_stored_with_literal_content(
        self, work_tree: Path, tmp_path: Path
    ) -> None:
        """The mimetype entry is uncompressed and ignores the file on disk."""
        out = pack_directory(work_tree, tmp_path / "book.epub")
        with zipfile.ZipFile(out) as zf:
            info = zf.getinfo("mimetype")
            assert info.compress_type == zipfile.ZIP_STORED
            assert zf.read("mimetype") == EPUB_MIMETYPE
            assert zf.namelist().count("mimetype") == 1

    def test_local_header_bytes(self, work_tree: Path, tmp_path: Path) -> None:
        """The file starts with the mimetype name and content at fixed offsets."""
        out = pack_directory(work_tree, tmp_path / "book.epub")
        raw = out.read_bytes()
        assert raw[:4] == b"PK\x03\x04"
        assert raw[30:38] == b"mimetype"
        assert raw[38:58] == b"application/epub+zip"

    def test_other_entries_deflated_with_posix_names(
        self, work_tree: Path, tmp_path: Path
    ) -> None:
        """Content files are compressed and named with forward slashes."""
        out = pack_directory(work_tree, tmp_path / "book.epub")
        with zipfile.ZipFile(out) as zf:
            names = zf.namelist()
            assert "OEBPS/images/p001.jpg" in names
            assert "META-INF/container.xml" in names
            for info in zf.infolist()[1:]:
                assert info.compress_type == zipfile.ZIP_DEFLATED

    def test_replaces_existing_output(self, work_tree: Path, tmp_path: Path) -> None:
        """An existing file at the destination is overwritten."""
        out = tmp_path / "book.epub"
        out.write_text("old")
        pack_directory(work_tree, out)
        assert zipfile.is_zipfile(out)

    def test_leaves_no_partial_file(self, work_tree: Path, tmp_path: Path) -> None:
        """The temporary .part file is gone after a successful pack."""
        pack_directory(work_tree, tmp_path / "book.epub")
        assert not (tmp_path / "book.epub.part").exists()

    def test_failure_keeps_old_output_and_cleans_up(
        self, work_tree: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failure while finalizing leaves the previous file and no .part file."""
        out = tmp_path / "book.epub"
        out.write_text("old")

        def boom(src: os.PathLike, dst: os.PathLike) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(archive.os, "replace", boom)
        with pytest.raises(OSError, match="disk full"):
            pack_directory(work_tree, out)

        assert out.read_text() == "old"
        assert not (tmp_path / "book.epub.part").exists()

    def test_missing_source_raises(self, tmp_path: Path) -> None:
        """A source that is not a directory raises ArchiveError."""
        with pytest.raises(ArchiveError):
            pack_directory(tmp_path / "nope", tmp_path / "book.epub")


class TestUnpack:
    """Tests for unpack."""

    def test_extracts_regular_entries(self, work_tree: Path, tmp_path: Path) -> None:
        """Packed files come back out with their content."""
        out = pack_directory(work_tree, tmp_path / "book.epub")
        dest = tmp_path / "out"
        written = unpack(out, dest)
        assert (dest / "OEBPS" / "images" / "p001.jpg").read_bytes() == b"\xff\xd8fake"
        assert (dest / "mimetype").read_bytes() == EPUB_MIMETYPE
        assert len(written) == 4

    def test_skips_parent_traversal(self, tmp_path: Path) -> None:
        """Entries climbing out with ../ are never written."""
        evil = tmp_path / "evil.zip"
        with zipfile.ZipFile(evil, "w") as zf:
            zf.writestr("ok/a.txt", "fine")
            zf.writestr("../../evil.txt", "pwned")

        dest = tmp_path / "deep" / "dest"
        written = unpack(evil, dest)

        assert written == [(dest / "ok" / "a.txt").resolve()]
        assert not (tmp_path / "evil.txt").exists()
        assert not (tmp_path / "deep" / "evil.txt").exists()

    def test_skips_absolute_names(self, tmp_path: Path) -> None:
        """Entries with absolute names are never written."""
        evil = tmp_path / "abs.zip"
        target = tmp_path / "absolute.txt"
        with zipfile.ZipFile(evil, "w") as zf:
            zf.writestr(str(target), "pwned")

        written = unpack(evil, tmp_path / "dest")
        assert written == []
        assert not target.exists()

    def test_creates_directory_entries(self, tmp_path: Path) -> None:
        """Directory entries become directories."""
        src = tmp_path / "dirs.zip"
        with zipfile.ZipFile(src, "w") as zf:
            zf.writestr("empty/", "")
        unpack(src, tmp_path / "dest")
        assert (tmp_path / "dest" / "empty").is_dir()


class TestReadEntry:
    """Tests for read_entry and list_entries."""

    def test_reads_existing_and_missing(self, tmp_path: Path) -> None:
        """Existing names return bytes, missing names return None."""
        path = tmp_path / "a.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("dir/", "")
            zf.writestr("dir/file.txt", "hello")
        with zipfile.ZipFile(path) as zf:
            assert read_entry(zf, "dir/file.txt") == b"hello"
            assert read_entry(zf, "missing.txt") is None
            assert read_entry(zf, "dir/") is None
            assert list_entries(zf) == ["dir/file.txt"]
