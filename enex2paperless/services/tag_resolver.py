"""Run-scoped cache that maps tag names to backend tag identifiers.

Every uploaded document carries the ids of its note's tags, so every
worker needs to turn names into ids.  :class:`TagResolver` makes sure that
each name is looked up (and, if missing, created) on the backend only once
per run, no matter how many workers ask for it at the same time.

Locking follows a reader/writer split adapted to asyncio:

    - the **shared** side is a plain dict read.  The event loop runs one
      task at a time and a dict lookup never suspends, so a cached id can
      be returned without taking any lock;
    - the **exclusive** side is an ``asyncio.Lock`` held across the network
      calls of a miss.  The cache is re-checked after acquiring it, so
      callers that queued up behind the first resolution of a name get the
      cached id instead of issuing their own lookup or creation.

The exclusive lock serializes all tag network traffic for the run.  Tag
cardinality is small compared with note volume, so this is cheap.

One resolver is built per run and passed to every worker; there is no
module-level cache.
"""

from __future__ import annotations

import asyncio

from enex2paperless.interfaces.document_backend import IDocumentBackend
from enex2paperless.utils.errors import TagCreationConflict, TagResolutionError
from enex2paperless.utils.logging import get_logger


class TagResolver:
    """Resolves tag names to ids, creating missing tags at most once.

    Parameters
    ----------
    backend:
        Document backend providing ``find_tag`` and ``create_tag``.
    """

    def __init__(self, backend: IDocumentBackend) -> None:
        self._backend = backend
        # casefolded name -> backend id; never evicted during a run.
        self._cache: dict[str, int] = {}
        self._write_lock = asyncio.Lock()
        self._created = 0
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, name: str) -> int:
        """Return the id for tag *name*, creating the tag if needed.

        Raises
        ------
        TagResolutionError
            If creation is refused and the tag still can't be found.
        BackendError
            For transport or unexpected-status failures on lookup.
        """
        key = _cache_key(name)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        async with self._write_lock:
            # Another task may have resolved it while we waited for the lock.
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            tag_id = await self._backend.find_tag(name)
            if tag_id is None:
                tag_id = await self._create(name)
            else:
                self._logger.debug("tag_resolved_existing", tag=name, tag_id=tag_id)

            self._cache[key] = tag_id
            return tag_id

    async def resolve_many(self, names: list[str]) -> list[int]:
        """Resolve *names* in order, dropping duplicate ids."""
        ids: list[int] = []
        for name in names:
            tag_id = await self.resolve(name)
            if tag_id not in ids:
                ids.append(tag_id)
        return ids

    def cached(self, name: str) -> int | None:
        """Return the cached id for *name* without touching the backend."""
        return self._cache.get(_cache_key(name))

    @property
    def created_count(self) -> int:
        """Number of tags this resolver created on the backend."""
        return self._created

    def __len__(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _create(self, name: str) -> int:
        self._logger.debug("tag_creating", tag=name)
        try:
            tag_id = await self._backend.create_tag(name)
        except TagCreationConflict as exc:
            # Someone else (another process, or a previous run racing this
            # one) may have created it; accept their id.
            tag_id = await self._backend.find_tag(name)
            if tag_id is None:
                self._logger.error("tag_create_failed", tag=name, error=str(exc))
                raise TagResolutionError(
                    message=f"failed to create tag {name!r}: {exc.message}",
                    provider_name=self._backend.get_provider_name(),
                ) from exc
            self._logger.debug("tag_created_elsewhere", tag=name, tag_id=tag_id)
            return tag_id

        self._created += 1
        return tag_id


def _cache_key(name: str) -> str:
    # Lookups are case-insensitive on the backend, so "Tax" and "tax" are
    # the same tag.
    return name.casefold()
