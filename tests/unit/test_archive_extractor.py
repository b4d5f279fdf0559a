"""Unit tests for library extraction from verified archives."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_tar_gz, make_zip
from xforge_precompiled.core.archive_extractor import (
    ArchiveExtractor,
    archive_kind,
    select_library_entry,
)
from xforge_precompiled.core.cache_store import CacheStore, write_atomic
from xforge_precompiled.core.errors import (
    CacheIOError,
    ConfigInvalidError,
    LibraryNotFoundInArchiveError,
    UnsupportedArchiveError,
)

BUILD_ID = "b1-abc"
TRIPLE = "x86_64-unknown-linux-gnu"


def _archive(cache: CacheStore, name: str, data: bytes) -> Path:
    path = cache.artifact_dir(BUILD_ID) / name
    write_atomic(path, data)
    return path


@pytest.fixture
def extractor(cache: CacheStore) -> ArchiveExtractor:
    return ArchiveExtractor(cache)


# ---------------------------------------------------------------------------
# Test: Entry selection
# ---------------------------------------------------------------------------


class TestSelectLibraryEntry:
    def test_prefers_lib_directory(self):
        names = ["pkg/bin/libwidget.so", "pkg/lib/libwidget.so"]
        assert select_library_entry(names, ".so") == "pkg/lib/libwidget.so"

    def test_first_match_without_lib_directory(self):
        assert select_library_entry(["a.so", "b.so"], ".so") == "a.so"

    def test_lib_as_file_name_is_not_a_directory(self):
        names = ["lib", "out/libwidget.so", "lib/libwidget.so"]
        assert select_library_entry(names, ".so") == "lib/libwidget.so"

    def test_no_match(self):
        assert select_library_entry(["a.dll", "README"], ".so") is None


class TestArchiveKind:
    @pytest.mark.parametrize(
        ("name", "kind"),
        [("w.zip", "zip"), ("w.tar.gz", "tar.gz"), ("w.tgz", "tar.gz")],
    )
    def test_supported(self, name, kind):
        assert archive_kind(name) == kind

    @pytest.mark.parametrize("name", ["w.tar.xz", "w.7z", "w.tar", "w"])
    def test_unsupported(self, name):
        with pytest.raises(UnsupportedArchiveError):
            archive_kind(name)

    def test_unsupported_is_never_eligible_for_fallback(self):
        assert issubclass(UnsupportedArchiveError, ConfigInvalidError)
        assert UnsupportedArchiveError.fallback_eligible is False


# ---------------------------------------------------------------------------
# Test: Extraction
# ---------------------------------------------------------------------------


class TestExtractLibrary:
    """Only the selected entry is written, under its base name."""

    def test_tar_gz(self, cache, extractor):
        archive = _archive(
            cache,
            "w.tar.gz",
            make_tar_gz({"w/lib/libwidget.so": b"lib-bytes", "w/include/w.h": b"h"}),
        )
        out = extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

        assert out == cache.extracted_dir(BUILD_ID, TRIPLE) / "libwidget.so"
        assert out.read_bytes() == b"lib-bytes"
        assert [p.name for p in out.parent.iterdir()] == ["libwidget.so"]

    def test_zip(self, cache, extractor):
        archive = _archive(cache, "w.zip", make_zip({"bin/widget.dll": b"dll-bytes"}))
        out = extractor.extract_library(
            archive, ".dll", build_id=BUILD_ID, target_triple="x86_64-pc-windows-msvc"
        )
        assert out.name == "widget.dll"
        assert out.read_bytes() == b"dll-bytes"

    def test_path_traversal_entry_lands_in_output_dir(self, cache, extractor):
        archive = _archive(cache, "w.tar.gz", make_tar_gz({"../../evil/libwidget.so": b"x"}))
        out = extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)
        assert out.parent == cache.extracted_dir(BUILD_ID, TRIPLE)

    def test_library_missing(self, cache, extractor):
        archive = _archive(cache, "w.tar.gz", make_tar_gz({"w/README": b"docs"}))
        with pytest.raises(LibraryNotFoundInArchiveError, match=r"\.so"):
            extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

    def test_corrupt_archive(self, cache, extractor):
        archive = _archive(cache, "w.zip", b"definitely not a zip")
        with pytest.raises(LibraryNotFoundInArchiveError, match="Could not decode"):
            extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

    def test_unsupported_suffix(self, cache, extractor):
        archive = _archive(cache, "w.tar.xz", b"whatever")
        with pytest.raises(UnsupportedArchiveError):
            extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

    def test_unwritable_output_dir(self, cache, extractor):
        archive = _archive(cache, "w.tar.gz", make_tar_gz({"lib/libwidget.so": b"x"}))
        (cache.root / "extracted").write_bytes(b"not a directory")

        with pytest.raises(CacheIOError, match="Cannot write extracted library") as excinfo:
            extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_archive_vanished(self, cache, extractor):
        archive = cache.artifact_dir(BUILD_ID) / "w.tar.gz"
        with pytest.raises(CacheIOError, match="Cannot read archive"):
            extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

    def test_idempotent(self, cache, extractor, monkeypatch):
        archive = _archive(cache, "w.tar.gz", make_tar_gz({"lib/libwidget.so": b"v1"}))
        first = extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

        decodes: list[Path] = []
        original = ArchiveExtractor._decode

        def _counting(self, path, kind, ext):
            decodes.append(path)
            return original(self, path, kind, ext)

        monkeypatch.setattr(ArchiveExtractor, "_decode", _counting)
        second = extractor.extract_library(archive, ".so", build_id=BUILD_ID, target_triple=TRIPLE)

        assert second == first
        assert decodes == []
