"""Shared concurrency primitives for the note-processing pipeline.

The pipeline is a classic producer / consumer arrangement built from
``asyncio.Queue`` handoffs.  Three helpers are exposed:

1. **close_queue / iter_queue** -- a sentinel-based close protocol for
   ``asyncio.Queue`` (which has no native "closed" state).  A producer
   closes a queue by putting one sentinel per consumer; consumers iterate
   with ``async for`` until they receive theirs.

2. **handoff_queue** -- builds the size-1 queue used between stages so a
   producer cannot run ahead of its consumers (backpressure).

3. **AtomicCounter** -- a lock-protected integer written from every
   worker and from ``asyncio.to_thread`` helpers.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, AsyncIterator


class _Closed:
    """Sentinel type marking the end of a queue."""

    _instance: _Closed | None = None

    def __new__(cls) -> _Closed:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<queue closed>"


CLOSED = _Closed()


def handoff_queue() -> asyncio.Queue:
    """Return a queue that holds at most one in-flight item.

    ``put`` suspends until a consumer has taken the previous item, which
    bounds how far a producer can outrun its consumers.
    """
    return asyncio.Queue(maxsize=1)


async def close_queue(queue: asyncio.Queue, consumers: int = 1) -> None:
    """Signal end-of-stream to ``consumers`` readers of *queue*."""
    for _ in range(consumers):
        await queue.put(CLOSED)


async def iter_queue(queue: asyncio.Queue) -> AsyncIterator[Any]:
    """Yield items from *queue* until a close sentinel is received.

    Each consumer swallows exactly one sentinel, so N consumers need N
    sentinels (see :func:`close_queue`).
    """
    while True:
        item = await queue.get()
        if item is CLOSED:
            return
        yield item


class AtomicCounter:
    """Integer counter safe to increment from any thread or task."""

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"
