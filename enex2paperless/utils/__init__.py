"""Utility modules for enex2paperless.

- **errors** -- exception hierarchy rooted at Enex2PaperlessError; workers
  catch the per-note subclasses, only setup and stream faults escape.
- **logging** -- structlog setup with a dual-renderer pattern: console
  output for interactive runs, structured JSON in production.
- **concurrency** -- queue close protocol, size-1 handoff queues and an
  atomic counter for the worker pool.
"""

# -- Domain exception hierarchy --------------------------------------------
from enex2paperless.utils.errors import (
    ArchiveError,
    BackendError,
    ConfigurationError,
    Enex2PaperlessError,
    NoteStreamError,
    PipelineError,
    ResourceError,
)

# -- Structured logging setup ----------------------------------------------
from enex2paperless.utils.logging import configure_logging, get_logger

# -- Worker-pool primitives ------------------------------------------------
from enex2paperless.utils.concurrency import AtomicCounter, close_queue, handoff_queue, iter_queue

__all__ = [
    "ArchiveError",
    "AtomicCounter",
    "BackendError",
    "ConfigurationError",
    "Enex2PaperlessError",
    "NoteStreamError",
    "PipelineError",
    "ResourceError",
    "close_queue",
    "configure_logging",
    "get_logger",
    "handoff_queue",
    "iter_queue",
]
