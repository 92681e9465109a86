"""Note-processing services used by the pipeline.

    note_source           -- streaming ENEX reader and async note producer
    resource_transformer  -- MIME admission, base64 decoding, naming helpers
    archive_extractor     -- zip expansion with path-safety checks
    tag_resolver          -- run-scoped tag name -> id cache
    disk_writer           -- collision-free writes into an output folder
    upload_worker         -- per-note processing loop
    note_inspector        -- read-only export listing (``--list``)
"""

from enex2paperless.services.archive_extractor import ArchiveExtractor
from enex2paperless.services.disk_writer import DiskWriter
from enex2paperless.services.note_inspector import NoteSummary, summarize
from enex2paperless.services.note_source import NoteSource, iter_notes
from enex2paperless.services.resource_transformer import ResourceTransformer
from enex2paperless.services.tag_resolver import TagResolver
from enex2paperless.services.upload_worker import UploadWorker, WorkerCounters

__all__ = [
    "ArchiveExtractor",
    "DiskWriter",
    "NoteSource",
    "NoteSummary",
    "ResourceTransformer",
    "TagResolver",
    "UploadWorker",
    "WorkerCounters",
    "iter_notes",
    "summarize",
]
