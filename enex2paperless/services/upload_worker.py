"""Per-note processing: filter, decode, then upload or save each attachment.

An :class:`UploadWorker` pulls notes off the shared note queue until the
queue is closed.  For each note it walks the resources in order:

1. Resources whose MIME type is not on the admission list (or is not a
   well-formed ``type/subtype``) are skipped.
2. The base64 payload is decoded.  Payloads that are not base64 at all are
   skipped; payloads that fail to decode fail the note.
3. The decoded bytes are then
     - expanded and handled entry by entry if the resource is a zip archive
       and unzipping is enabled,
     - written to the output folder if one is configured,
     - or uploaded to the document backend with the note's title, creation
       date and tags.

The first failure in step 2 or 3 sends the note to the failure queue and
stops work on its remaining resources; the whole note is replayed by the
next retry cycle.  Entries inside an archive are handled best-effort and
never fail the note.
"""

from __future__ import annotations

import asyncio
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from enex2paperless.interfaces.document_backend import DocumentUpload, IDocumentBackend
from enex2paperless.models.archive import ExtractedFile
from enex2paperless.models.note import Note, Resource
from enex2paperless.services.archive_extractor import ArchiveExtractor, is_archive
from enex2paperless.services.disk_writer import DiskWriter
from enex2paperless.services.resource_transformer import (
    ResourceTransformer,
    convert_date_format,
    sanitize_filename,
)
from enex2paperless.services.tag_resolver import TagResolver
from enex2paperless.utils.concurrency import AtomicCounter, iter_queue
from enex2paperless.utils.errors import (
    ArchiveError,
    BackendError,
    MimeTypeError,
    PayloadDecodeError,
    PayloadValidationError,
    TimestampError,
)
from enex2paperless.utils.logging import get_logger

# Failures that send a note to the retry queue.
_NOTE_FAILURES = (PayloadDecodeError, TimestampError, BackendError, OSError)
# Failures that only drop one archive entry.
_ENTRY_FAILURES = (TimestampError, BackendError, OSError)


@dataclass
class WorkerCounters:
    """Counters shared by every worker of one cycle."""

    notes_processed: AtomicCounter = field(default_factory=AtomicCounter)
    files_uploaded: AtomicCounter = field(default_factory=AtomicCounter)


class UploadWorker:
    """Consumes notes and persists their wanted attachments.

    Several workers run side by side on one event loop; they share the
    counters, the tag resolver and the backend (and with it the HTTP
    connection pool).
    """

    def __init__(
        self,
        transformer: ResourceTransformer,
        resolver: TagResolver,
        backend: IDocumentBackend,
        extractor: ArchiveExtractor,
        counters: WorkerCounters,
        unzip: bool = False,
        extra_tags: list[str] | None = None,
        disk_writer: DiskWriter | None = None,
        name: str = "worker",
    ) -> None:
        self._transformer = transformer
        self._resolver = resolver
        self._backend = backend
        self._extractor = extractor
        self._counters = counters
        self._unzip = unzip
        self._extra_tags = list(extra_tags or [])
        self._disk_writer = disk_writer or DiskWriter()
        self._logger = get_logger(__name__).bind(worker=name)

    async def run(
        self,
        queue: asyncio.Queue,
        failures: asyncio.Queue,
        output_folder: str = "",
    ) -> None:
        """Process notes from *queue* until it is closed.

        Failed notes are put on *failures*.
        """
        async for note in iter_queue(queue):
            if not await self.process_note(note, output_folder):
                await failures.put(note)

    async def process_note(self, note: Note, output_folder: str = "") -> bool:
        """Handle every resource of *note*.

        Returns False if the note failed and should be retried, True
        otherwise (including notes without resources, which are ignored).
        """
        if not note.has_resources:
            self._logger.debug("note_skipped_no_resources", note=note.title)
            return True

        self._counters.notes_processed.increment()
        note = note.with_extra_tags(self._extra_tags)

        for position, resource in enumerate(note.resources):
            try:
                await self._process_resource(note, resource, output_folder)
            except _NOTE_FAILURES as exc:
                self._logger.error(
                    "note_failed",
                    note=note.title,
                    resource=resource.file_name,
                    position=position,
                    skipped_resources=len(note.resources) - position - 1,
                    error=str(exc),
                )
                return False
        return True

    # ------------------------------------------------------------------
    # Resource handling
    # ------------------------------------------------------------------

    async def _process_resource(self, note: Note, resource: Resource, output_folder: str) -> None:
        file_name = resource.file_name or note.title
        self._logger.info("processing_file", note=note.title, file=file_name)

        try:
            wanted = self._transformer.is_wanted(resource.mime)
        except MimeTypeError as exc:
            self._logger.error("resource_mime_invalid", file=file_name, error=str(exc))
            return
        if not wanted:
            self._logger.debug("resource_skipped_unwanted_type", file=file_name, mime=resource.mime)
            return

        try:
            data = self._transformer.decode(resource)
        except PayloadValidationError as exc:
            self._logger.error("resource_skipped_invalid_payload", file=file_name, error=str(exc))
            return

        if self._unzip and is_archive(file_name, resource.mime):
            await self._process_archive(note, data, file_name, output_folder)
            return

        if output_folder:
            await asyncio.to_thread(self._disk_writer.save, data, file_name, output_folder)
        else:
            await self._upload(
                note,
                title=note.title,
                file_name=file_name,
                mime_type=resource.mime,
                data=data,
            )
        self._counters.files_uploaded.increment()

    async def _process_archive(
        self,
        note: Note,
        data: bytes,
        archive_name: str,
        output_folder: str,
    ) -> None:
        self._logger.info("processing_archive", note=note.title, archive=archive_name)

        scratch = tempfile.TemporaryDirectory(prefix="enex2paperless-")
        try:
            try:
                entries = await asyncio.to_thread(
                    self._extractor.extract, data, scratch.name, archive_name
                )
            except ArchiveError as exc:
                self._logger.error("archive_extract_failed", archive=archive_name, error=str(exc))
                return

            for entry in entries:
                await self._process_archive_entry(note, entry, output_folder)
        finally:
            await asyncio.to_thread(scratch.cleanup)

    async def _process_archive_entry(
        self,
        note: Note,
        entry: ExtractedFile,
        output_folder: str,
    ) -> None:
        try:
            wanted = self._transformer.is_wanted(entry.mime_type)
        except MimeTypeError as exc:
            self._logger.error("archive_entry_mime_invalid", entry=entry.name, error=str(exc))
            return
        if not wanted:
            self._logger.debug(
                "archive_entry_skipped_unwanted_type",
                entry=entry.name,
                mime=entry.mime_type,
            )
            return

        archive_stem = Path(entry.archive_name).stem
        try:
            if output_folder:
                output_name = sanitize_filename(
                    f"{note.title}_{archive_stem}_{entry.stem}{entry.suffix}"
                )
                await asyncio.to_thread(
                    self._disk_writer.save, entry.data, output_name, output_folder
                )
            else:
                await self._upload(
                    note,
                    title=f"{note.title} | {archive_stem} | {entry.stem}",
                    file_name=Path(entry.name).name,
                    mime_type=entry.mime_type,
                    data=entry.data,
                )
        except _ENTRY_FAILURES as exc:
            self._logger.error(
                "archive_entry_failed",
                archive=entry.archive_name,
                entry=entry.name,
                error=str(exc),
            )
            return

        self._counters.files_uploaded.increment()

    async def _upload(
        self,
        note: Note,
        title: str,
        file_name: str,
        mime_type: str,
        data: bytes,
    ) -> None:
        created = convert_date_format(note.created)
        tag_ids = await self._resolver.resolve_many(note.tags)
        await self._backend.upload_document(
            DocumentUpload(
                title=title,
                created=created,
                tag_ids=tag_ids,
                file_name=file_name,
                mime_type=mime_type,
                data=data,
            )
        )
        self._logger.info("file_uploaded", note=note.title, file=file_name, tags=len(tag_ids))
