"""Runs the note pipeline and its retry loop.

One call to :meth:`PipelineCoordinator.process` takes an export file from
start to finish::

    IDLE
      -> STREAMING        producer + N workers + failure catcher
      -> DRAINING         workers joined; failure queue closed and drained
      -> RETRY_DECISION   failures left?  ask the retry prompt
           -> RETRYING    same pool shape, fed from the failed-note list
           -> DONE

Each cycle is one :meth:`run_cycle` call.  A cycle owns its queues and
counters, so nothing leaks from one cycle into the next except the list of
failed notes and the tag cache, which lives for the whole run.

The failure queue is closed only after every worker has returned, because
workers are the only writers.  A fault in the XML stream still lets the
cycle wind down (the producer closes the note queue on its way out) and is
then raised from :meth:`process` as :class:`NoteStreamError`.
"""

from __future__ import annotations

import asyncio
import functools
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import structlog

from enex2paperless.interfaces.document_backend import IDocumentBackend
from enex2paperless.models.pipeline import (
    CyclePhase,
    CycleResult,
    ProcessOptions,
    ProcessResult,
)
from enex2paperless.pipeline.failure_catcher import FailureCatcher, feed_notes
from enex2paperless.services.archive_extractor import ArchiveExtractor
from enex2paperless.services.disk_writer import DiskWriter
from enex2paperless.services.note_source import NoteSource
from enex2paperless.services.resource_transformer import ResourceTransformer
from enex2paperless.services.tag_resolver import TagResolver
from enex2paperless.services.upload_worker import UploadWorker, WorkerCounters
from enex2paperless.utils.concurrency import close_queue, handoff_queue
from enex2paperless.utils.errors import NoteStreamError, PipelineError
from enex2paperless.utils.logging import get_logger

# Producer of a cycle: puts notes on the queue, then closes it for the
# given number of consumers.
NoteFeed = Callable[[asyncio.Queue, int], Awaitable[Any]]


class PipelineCoordinator:
    """Drives producer, workers and failure catcher through retry cycles.

    All collaborators are injected and shared by every worker of every
    cycle.  Build one coordinator per run so the tag cache is scoped to it.
    """

    def __init__(
        self,
        transformer: ResourceTransformer,
        resolver: TagResolver,
        backend: IDocumentBackend,
        extractor: ArchiveExtractor | None = None,
        disk_writer: DiskWriter | None = None,
        unzip: bool = False,
        extra_tags: list[str] | None = None,
    ) -> None:
        self._transformer = transformer
        self._resolver = resolver
        self._backend = backend
        self._extractor = extractor or ArchiveExtractor()
        self._disk_writer = disk_writer or DiskWriter()
        self._unzip = unzip
        self._extra_tags = list(extra_tags or [])
        self._phase = CyclePhase.IDLE
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def phase(self) -> CyclePhase:
        return self._phase

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(self, path: Path | str, options: ProcessOptions) -> ProcessResult:
        """Run every note of the export at *path* through the pipeline.

        Notes still failing when the retry loop ends are returned in
        ``ProcessResult.failed_notes``; they are not raised.

        Raises
        ------
        PipelineError
            If *path* is not a readable file or fewer than one worker is
            requested.
        NoteStreamError
            If the export can't be parsed to the end.
        """
        path = Path(path)
        self._validate(path, options)

        self._set_phase(CyclePhase.STREAMING, path=str(path), workers=options.concurrent_workers)
        try:
            first = await self.run_cycle(NoteSource(path).stream, options)
        except NoteStreamError:
            self._set_phase(CyclePhase.DONE)
            raise

        cycles = 1
        files_uploaded = first.files_uploaded
        failed = first.failed_notes
        self._log_cycle(cycles, first)

        while True:
            self._set_phase(CyclePhase.RETRY_DECISION, failed=len(failed))
            if not failed or not await self._should_retry(options, len(failed)):
                break

            self._set_phase(CyclePhase.RETRYING, notes=len(failed))
            retry = await self.run_cycle(functools.partial(feed_notes, failed), options)
            cycles += 1
            files_uploaded += retry.files_uploaded
            failed = retry.failed_notes
            self._log_cycle(cycles, retry)

        self._set_phase(CyclePhase.DONE)
        result = ProcessResult(
            notes_processed=first.notes_processed,
            files_uploaded=files_uploaded,
            failed_notes=failed,
            cycles=cycles,
        )
        self._logger.info(
            "pipeline_complete",
            notes_processed=result.notes_processed,
            files_uploaded=result.files_uploaded,
            failed_notes=len(result.failed_notes),
            cycles=result.cycles,
        )
        return result

    async def run_cycle(self, source: NoteFeed, options: ProcessOptions) -> CycleResult:
        """Run one producer / worker-pool / failure-catcher cycle.

        *source* is awaited as ``source(queue, consumers)`` and must close
        the queue when it is done, also on error.
        """
        worker_count = options.concurrent_workers
        if worker_count < 1:
            raise PipelineError(f"concurrent workers must be at least 1, got {worker_count}")

        counters = WorkerCounters()
        notes = handoff_queue()
        failures = handoff_queue()
        catcher = FailureCatcher()

        catcher_task = asyncio.create_task(catcher.drain(failures))
        producer_task = asyncio.create_task(source(notes, worker_count))
        worker_tasks = [
            asyncio.create_task(
                self._build_worker(counters, f"worker-{index + 1}").run(
                    notes, failures, options.output_folder
                )
            )
            for index in range(worker_count)
        ]

        try:
            await asyncio.gather(*worker_tasks)
            self._set_phase(CyclePhase.DRAINING)
            # Every writer has returned; safe to close.
            await close_queue(failures)
            failed = await catcher_task
            await producer_task
        except BaseException:
            pending = [producer_task, catcher_task, *worker_tasks]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

        return CycleResult(
            notes_processed=counters.notes_processed.value,
            files_uploaded=counters.files_uploaded.value,
            failed_notes=failed,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_worker(self, counters: WorkerCounters, name: str) -> UploadWorker:
        return UploadWorker(
            transformer=self._transformer,
            resolver=self._resolver,
            backend=self._backend,
            extractor=self._extractor,
            counters=counters,
            unzip=self._unzip,
            extra_tags=self._extra_tags,
            disk_writer=self._disk_writer,
            name=name,
        )

    def _validate(self, path: Path, options: ProcessOptions) -> None:
        if options.concurrent_workers < 1:
            raise PipelineError(
                f"concurrent workers must be at least 1, got {options.concurrent_workers}"
            )
        if not path.is_file():
            raise PipelineError(f"input file not found: {path}")
        if not os.access(path, os.R_OK):
            raise PipelineError(f"input file is not readable: {path}")

    async def _should_retry(self, options: ProcessOptions, failed_count: int) -> bool:
        if options.retry_prompt is None:
            return False
        # Prompts may block on stdin; no cycle is running at this point.
        return bool(await asyncio.to_thread(options.retry_prompt, failed_count))

    def _set_phase(self, phase: CyclePhase, **context: Any) -> None:
        previous = self._phase
        self._phase = phase
        self._logger.debug(
            "pipeline_phase_changed",
            previous=previous.value,
            phase=phase.value,
            **context,
        )

    def _log_cycle(self, cycle: int, result: CycleResult) -> None:
        self._logger.info(
            "cycle_complete",
            cycle=cycle,
            notes_processed=result.notes_processed,
            files_uploaded=result.files_uploaded,
            failed_notes=len(result.failed_notes),
        )
