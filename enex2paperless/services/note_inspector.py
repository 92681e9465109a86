"""Read-only listing of what an export file contains.

Backs the ``--list`` CLI flag: every note is logged with its timestamps,
attachments and tags, followed by a total.  Nothing is uploaded or written.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from enex2paperless.services.note_source import iter_notes
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)

_PDF_MIME = "application/pdf"


class NoteSummary(BaseModel):
    """Totals gathered while listing an export."""

    model_config = ConfigDict(frozen=True)

    total_notes: int = 0
    pdf_count: int = 0
    attachment_count: int = 0


def summarize(path: Path | str) -> NoteSummary:
    """Log one line per note in *path* and return the totals.

    Raises
    ------
    NoteStreamError
        If the export can't be parsed.
    """
    total = 0
    pdfs = 0
    attachments = 0

    for note in iter_notes(path):
        total += 1
        attachments += len(note.resources)
        pdfs += sum(1 for resource in note.resources if resource.mime == _PDF_MIME)

        _logger.info(
            "note_info",
            index=total,
            title=note.title,
            created=note.created,
            updated=note.updated,
            attached_files=", ".join(f"{r.file_name} - {r.mime}" for r in note.resources),
            tags=",".join(note.tags),
        )

    _logger.info("note_info_total", total_notes=total, pdfs=pdfs, attachments=attachments)
    return NoteSummary(total_notes=total, pdf_count=pdfs, attachment_count=attachments)
