"""Writes decoded attachments into an output folder without overwriting.

Used instead of the Paperless upload when an output folder is configured.
If the target name is already taken, a numeric suffix is inserted before
the extension (``scan.pdf`` -> ``scan-1.pdf`` -> ``scan-2.pdf``) until a
free name is found.  Files are opened in exclusive-create mode, so two
workers saving the same name at the same time still end up with two
distinct files.

All methods are blocking; workers call them through ``asyncio.to_thread``.
"""

from __future__ import annotations

from pathlib import Path

from enex2paperless.services.resource_transformer import sanitize_filename
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)


class DiskWriter:
    """Saves byte payloads into a folder, picking a free file name."""

    def save(self, data: bytes, file_name: str, folder: Path | str) -> Path:
        """Write *data* as *file_name* inside *folder* and return the path.

        *folder* is created if needed.  Existing files are never modified.

        Raises
        ------
        OSError
            If the folder can't be created or the file can't be written.
        """
        target_dir = Path(folder)
        target_dir.mkdir(parents=True, exist_ok=True)

        safe_name = sanitize_filename(file_name)
        stem = Path(safe_name).stem
        suffix = Path(safe_name).suffix

        attempt = 0
        while True:
            candidate_name = safe_name if attempt == 0 else f"{stem}-{attempt}{suffix}"
            candidate = target_dir / candidate_name
            try:
                with open(candidate, "xb") as fh:
                    fh.write(data)
            except FileExistsError:
                attempt += 1
                continue

            if attempt:
                _logger.warning(
                    "file_renamed_to_avoid_overwrite",
                    requested=safe_name,
                    saved_as=candidate_name,
                )
            _logger.info("file_saved", path=str(candidate), size=len(data))
            return candidate
