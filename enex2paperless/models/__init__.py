"""enex2paperless domain models - re-exports all public model classes.

The models are organized across three submodules by concern:
    - note.py      - Notes and resources decoded from the ENEX export
    - archive.py   - Files extracted from attachment archives
    - pipeline.py  - Coordinator state machine, options and results
"""

from __future__ import annotations

from enex2paperless.models.archive import ExtractedFile
from enex2paperless.models.note import (
    Note,
    NoteAttributes,
    Resource,
    ResourceAttributes,
)
from enex2paperless.models.pipeline import (
    CyclePhase,
    CycleResult,
    ProcessOptions,
    ProcessResult,
    RetryPrompt,
)

__all__ = [
    "CyclePhase",
    "CycleResult",
    "ExtractedFile",
    "Note",
    "NoteAttributes",
    "ProcessOptions",
    "ProcessResult",
    "Resource",
    "ResourceAttributes",
    "RetryPrompt",
]
