"""Unpacks zip attachments into individual files.

Some notes carry a zip archive instead of (or next to) regular documents.
With unzipping enabled, the upload worker hands the decoded archive bytes
to :class:`ArchiveExtractor`, which writes every regular entry under an
extraction root and returns the entries as :class:`ExtractedFile` models.

Entry policy:
    - directory entries are skipped;
    - platform artifacts (``.DS_Store``, ``Thumbs.db``, ``desktop.ini``,
      ``__MACOSX/`` resource forks, ``._*`` AppleDouble files) are skipped;
    - every entry path is resolved against the extraction root, and any
      entry that would land outside it (``../x``, ``/etc/x``, ``C:\\x``) is
      rejected and never written.

MIME types are inferred from the entry's extension.
"""

from __future__ import annotations

import io
import zipfile
import zlib
from pathlib import Path, PurePosixPath, PureWindowsPath

from enex2paperless.models.archive import ExtractedFile
from enex2paperless.services.resource_transformer import mime_from_filename
from enex2paperless.utils.errors import ArchiveError, UnsafeArchiveEntryError
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)

# Case-insensitive substrings marking non-content entries.
SYSTEM_ARTIFACT_MARKERS: tuple[str, ...] = (
    ".ds_store",
    "thumbs.db",
    "desktop.ini",
    "__macosx",
    "._",
)

ARCHIVE_MIME_TYPES: frozenset[str] = frozenset({
    "application/zip",
    "application/x-zip",
    "application/x-zip-compressed",
})

# Faults confined to a single entry; the rest of the archive is still read.
# RuntimeError covers encrypted members without a password.
_ENTRY_READ_FAILURES = (
    OSError,
    EOFError,
    zlib.error,
    zipfile.BadZipFile,
    RuntimeError,
    NotImplementedError,
)


def is_system_file(name: str) -> bool:
    """Return True if *name* is a platform artifact rather than content."""
    lowered = name.lower()
    return any(marker in lowered for marker in SYSTEM_ARTIFACT_MARKERS)


def is_archive(file_name: str, mime_type: str = "") -> bool:
    """Return True if an attachment should be treated as a zip container."""
    if file_name.lower().endswith(".zip"):
        return True
    return mime_type.lower() in ARCHIVE_MIME_TYPES


def safe_entry_path(dest_root: Path, entry_name: str) -> Path:
    """Resolve *entry_name* under *dest_root*.

    Raises
    ------
    UnsafeArchiveEntryError
        If the entry is absolute, carries a drive letter, or resolves to a
        location outside *dest_root*.
    """
    windows_path = PureWindowsPath(entry_name)
    if PurePosixPath(entry_name).is_absolute() or windows_path.drive or windows_path.root:
        raise UnsafeArchiveEntryError(f"absolute path in archive: {entry_name!r}")

    root = dest_root.resolve()
    # Zip entries may use either separator; treat both as directory breaks.
    relative = Path(*PureWindowsPath(entry_name).parts)
    target = (root / relative).resolve()

    if target == root or root not in target.parents:
        raise UnsafeArchiveEntryError(f"unsafe path in archive: {entry_name!r}")
    return target


class ArchiveExtractor:
    """Extracts regular files from in-memory zip archives."""

    def extract(
        self,
        data: bytes,
        dest_root: Path | str,
        archive_name: str,
    ) -> list[ExtractedFile]:
        """Write the archive's content entries under *dest_root* and return them.

        Parameters
        ----------
        data:
            The decoded archive bytes.
        dest_root:
            Extraction root; created if missing.
        archive_name:
            File name of the archive, recorded on every returned entry.

        Raises
        ------
        ArchiveError
            If *data* is not a readable zip archive, or the root can't be
            created.  Unsafe or unreadable entries are logged and skipped.
        """
        root = Path(dest_root)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveError(f"failed to create destination directory: {exc}") from exc

        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, zlib.error) as exc:
            raise ArchiveError(f"failed to open zip archive {archive_name!r}: {exc}") from exc

        extracted: list[ExtractedFile] = []
        with archive:
            _logger.info(
                "archive_opened",
                archive=archive_name,
                total_entries=len(archive.infolist()),
            )
            for info in archive.infolist():
                if info.is_dir():
                    _logger.debug("archive_entry_skipped_directory", entry=info.filename)
                    continue
                if is_system_file(info.filename):
                    _logger.info("archive_entry_skipped_system_file", entry=info.filename)
                    continue

                try:
                    target = safe_entry_path(root, info.filename)
                except UnsafeArchiveEntryError as exc:
                    _logger.warning(
                        "archive_entry_rejected",
                        archive=archive_name,
                        entry=info.filename,
                        error=str(exc),
                    )
                    continue

                try:
                    content = archive.read(info)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(content)
                except _ENTRY_READ_FAILURES as exc:
                    _logger.error(
                        "archive_entry_extract_failed",
                        archive=archive_name,
                        entry=info.filename,
                        error=str(exc),
                    )
                    continue

                extracted.append(
                    ExtractedFile(
                        path=target,
                        name=info.filename,
                        data=content,
                        mime_type=mime_from_filename(info.filename),
                        archive_name=archive_name,
                    )
                )
                _logger.info("archive_entry_extracted", archive=archive_name, entry=info.filename)

        return extracted
