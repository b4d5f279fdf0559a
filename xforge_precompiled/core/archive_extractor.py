"""Extract the native library from a verified release archive.

Supported archives: ``.zip`` and gzip-compressed tar (``.tar.gz``/``.tgz``).
Inside the archive the library is chosen by extension, preferring an entry
under a ``lib`` directory.  Only the selected entry's bytes are written, under
its base name, so archive paths never influence where files land.
"""

from __future__ import annotations

import gzip
import posixpath
import tarfile
import zipfile
from collections.abc import Iterable
from pathlib import Path

from xforge_precompiled.core.cache_store import CacheStore, write_atomic
from xforge_precompiled.core.errors import (
    CacheIOError,
    LibraryNotFoundInArchiveError,
    UnsupportedArchiveError,
)
from xforge_precompiled.core.reporting import Reporter

LIBRARY_DIR_SEGMENT = "lib"

_ZIP_SUFFIXES = (".zip",)
_TAR_GZ_SUFFIXES = (".tar.gz", ".tgz")


def archive_kind(file_name: str) -> str:
    """Return ``"zip"`` or ``"tar.gz"`` for *file_name*, by suffix."""
    if file_name.endswith(_ZIP_SUFFIXES):
        return "zip"
    if file_name.endswith(_TAR_GZ_SUFFIXES):
        return "tar.gz"
    raise UnsupportedArchiveError(f"Unsupported archive type: {file_name}")


def select_library_entry(names: Iterable[str], expected_extension: str) -> str | None:
    """Pick the library entry from archive member names.

    Prefers an extension match with a ``lib`` path segment, else the first
    extension match, else ``None``.
    """
    fallback: str | None = None
    for name in names:
        if posixpath.splitext(name)[1] != expected_extension:
            continue
        if LIBRARY_DIR_SEGMENT in name.split("/")[:-1]:
            return name
        if fallback is None:
            fallback = name
    return fallback


def find_library_in_dir(directory: Path, expected_extension: str) -> Path | None:
    if not directory.is_dir():
        return None
    for entry in sorted(directory.iterdir()):
        if entry.is_file() and entry.suffix == expected_extension:
            return entry
    return None


class ArchiveExtractor:
    """Extracts libraries into ``extracted/<build_id>/<target_triple>/``.

    Extraction is idempotent: when the output directory already holds a file
    with the expected extension, it is returned without decoding the archive.
    """

    def __init__(self, cache: CacheStore, reporter: Reporter | None = None) -> None:
        self._cache = cache
        self._reporter = reporter or Reporter()

    def extract_library(
        self,
        archive_path: Path,
        expected_extension: str,
        *,
        build_id: str,
        target_triple: str,
    ) -> Path:
        archive_path = Path(archive_path)
        out_dir = self._cache.extracted_dir(build_id, target_triple)

        existing = find_library_in_dir(out_dir, expected_extension)
        if existing is not None:
            self._reporter.debug(f"Reusing extracted library {existing}", stage="extract")
            return existing

        kind = archive_kind(archive_path.name)
        try:
            entry_name, data = self._decode(archive_path, kind, expected_extension)
        except (zipfile.BadZipFile, tarfile.TarError, gzip.BadGzipFile, EOFError) as exc:
            raise LibraryNotFoundInArchiveError(
                f"Could not decode {archive_path.name}: {exc}"
            ) from exc
        except OSError as exc:
            raise CacheIOError(f"Cannot read archive {archive_path}: {exc}") from exc

        out_path = out_dir / posixpath.basename(entry_name)
        try:
            write_atomic(out_path, data)
        except OSError as exc:
            raise CacheIOError(f"Cannot write extracted library {out_path}: {exc}") from exc
        self._reporter.info(f"Extracted {entry_name} to {out_path}", stage="extract")
        return out_path

    def _decode(self, archive_path: Path, kind: str, expected_extension: str) -> tuple[str, bytes]:
        if kind == "zip":
            with zipfile.ZipFile(archive_path) as archive:
                names = [info.filename for info in archive.infolist() if not info.is_dir()]
                selected = self._require(names, expected_extension, archive_path)
                return selected, archive.read(selected)

        with tarfile.open(archive_path, mode="r:gz") as archive:
            members = {m.name: m for m in archive.getmembers() if m.isfile()}
            selected = self._require(members, expected_extension, archive_path)
            handle = archive.extractfile(members[selected])
            if handle is None:
                raise LibraryNotFoundInArchiveError(
                    f"Entry {selected} in {archive_path.name} is not readable"
                )
            with handle:
                return selected, handle.read()

    @staticmethod
    def _require(names: Iterable[str], expected_extension: str, archive_path: Path) -> str:
        selected = select_library_entry(names, expected_extension)
        if selected is None:
            raise LibraryNotFoundInArchiveError(
                f'No library with extension "{expected_extension}" found in {archive_path.name}'
            )
        return selected
