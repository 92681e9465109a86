"""Application wiring for enex2paperless.

Builds the shared HTTP client, the Paperless adapter and the pipeline
coordinator from a :class:`Settings` instance.  The CLI calls
:func:`run_migration`; scripts and tests can call the individual builders
to swap in their own pieces.
"""

from __future__ import annotations

from pathlib import Path

import httpx

from enex2paperless.config.settings import Settings
from enex2paperless.interfaces.document_backend import IDocumentBackend
from enex2paperless.models.pipeline import ProcessOptions, ProcessResult
from enex2paperless.pipeline.coordinator import PipelineCoordinator
from enex2paperless.providers.paperless.paperless_provider import PaperlessProvider
from enex2paperless.services.archive_extractor import ArchiveExtractor
from enex2paperless.services.disk_writer import DiskWriter
from enex2paperless.services.resource_transformer import ResourceTransformer
from enex2paperless.services.tag_resolver import TagResolver
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Return the client shared by every worker.

    The client-level timeout is the only bound on a stalled request.
    """
    return httpx.AsyncClient(timeout=settings.http_timeout)


def build_backend(settings: Settings, http_client: httpx.AsyncClient) -> IDocumentBackend:
    return PaperlessProvider(http_client=http_client, settings=settings)


def build_coordinator(
    settings: Settings,
    backend: IDocumentBackend,
    extra_tags: list[str] | None = None,
) -> PipelineCoordinator:
    """Assemble a coordinator with a fresh tag cache for one run.

    *extra_tags* are added to ``settings.additional_tags``.
    """
    tags = list(dict.fromkeys([*settings.additional_tags, *(extra_tags or [])]))
    return PipelineCoordinator(
        transformer=ResourceTransformer(settings.file_types),
        resolver=TagResolver(backend),
        backend=backend,
        extractor=ArchiveExtractor(),
        disk_writer=DiskWriter(),
        unzip=settings.unzip,
        extra_tags=tags,
    )


async def run_migration(
    path: Path | str,
    settings: Settings,
    options: ProcessOptions,
    extra_tags: list[str] | None = None,
) -> ProcessResult:
    """Migrate the export at *path* with the given settings.

    Raises
    ------
    PipelineError
        For an unusable input file or worker count, or a broken export.
    """
    async with build_http_client(settings) as http_client:
        backend = build_backend(settings, http_client)
        coordinator = build_coordinator(settings, backend, extra_tags)
        _logger.info(
            "migration_start",
            path=str(path),
            mode="disk" if options.output_folder else "paperless",
            workers=options.concurrent_workers,
            file_types=settings.file_types,
        )
        return await coordinator.process(path, options)
