"""Pipeline state and result models.

:class:`CyclePhase` is the coordinator's state machine::

    IDLE -> STREAMING -> DRAINING -> RETRY_DECISION -> RETRYING -> ... -> DONE

:class:`ProcessOptions` is what a caller hands to the coordinator and
:class:`ProcessResult` is what comes back once the retry loop has ended.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from enex2paperless.models.note import Note

# Called with the number of failed notes; return True to run another cycle.
RetryPrompt = Callable[[int], bool]


class CyclePhase(str, Enum):  # noqa: UP042  (StrEnum needs Python 3.11)
    """States of the pipeline coordinator."""

    IDLE = "IDLE"                       # Nothing started yet
    STREAMING = "STREAMING"             # Producer + workers running
    DRAINING = "DRAINING"               # Workers joined, failure catcher finishing
    RETRY_DECISION = "RETRY_DECISION"   # Waiting on the retry callback
    RETRYING = "RETRYING"               # Workers replaying failed notes
    DONE = "DONE"                       # Terminal


class ProcessOptions(BaseModel):
    """Caller-supplied knobs for one :meth:`PipelineCoordinator.process` run.

    ``concurrent_workers`` is validated by the coordinator rather than here
    so that a zero value surfaces as a :class:`PipelineError` at run time.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    concurrent_workers: int = 1
    # Empty string -> remote upload mode.
    output_folder: str = ""
    # None -> never retry.
    retry_prompt: RetryPrompt | None = None


class CycleResult(BaseModel):
    """Counts and leftovers from a single worker-pool cycle."""

    model_config = ConfigDict(frozen=True)

    notes_processed: int = 0
    files_uploaded: int = 0
    failed_notes: list[Note] = Field(default_factory=list)


class ProcessResult(BaseModel):
    """Aggregate outcome of a full run including all retry cycles.

    ``notes_processed`` comes from the first cycle only, because retry
    cycles re-process notes that were already counted.
    """

    model_config = ConfigDict(frozen=True)

    notes_processed: int = 0
    files_uploaded: int = 0
    failed_notes: list[Note] = Field(default_factory=list)
    cycles: int = 0

    @property
    def succeeded(self) -> bool:
        return not self.failed_notes
