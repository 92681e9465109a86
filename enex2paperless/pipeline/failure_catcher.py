"""Collects failed notes during a cycle and replays them in the next one."""

from __future__ import annotations

import asyncio

from enex2paperless.models.note import Note
from enex2paperless.utils.concurrency import close_queue, iter_queue
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)


class FailureCatcher:
    """Drains the failure queue of one cycle into a list."""

    def __init__(self) -> None:
        self._notes: list[Note] = []

    @property
    def notes(self) -> list[Note]:
        return list(self._notes)

    async def drain(self, queue: asyncio.Queue) -> list[Note]:
        """Accumulate notes from *queue* until it is closed, then return them."""
        async for note in iter_queue(queue):
            self._notes.append(note)
            _logger.debug("note_queued_for_retry", note=note.title, failed=len(self._notes))
        return self.notes


async def feed_notes(notes: list[Note], queue: asyncio.Queue, consumers: int = 1) -> int:
    """Put *notes* on *queue* in order, then close it for *consumers* readers.

    This is the producer of a retry cycle: failed notes come from memory,
    the export file is not read again.
    """
    try:
        for note in notes:
            await queue.put(note)
    finally:
        await close_queue(queue, consumers)
    return len(notes)
