"""Unit tests for enex2paperless.pipeline (coordinator and failure catcher)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from enex2paperless.models.pipeline import CyclePhase, ProcessOptions
from enex2paperless.pipeline.coordinator import PipelineCoordinator
from enex2paperless.pipeline.failure_catcher import FailureCatcher, feed_notes
from enex2paperless.services.resource_transformer import ResourceTransformer
from enex2paperless.services.tag_resolver import TagResolver
from enex2paperless.utils.concurrency import CLOSED, close_queue
from enex2paperless.utils.errors import NoteStreamError, PipelineError
from tests.conftest import ENEX_HEADER, SAMPLE_PDF, FakeBackend, make_note, note_xml, resource_xml


def _coordinator(backend: FakeBackend, **kwargs) -> PipelineCoordinator:
    return PipelineCoordinator(
        transformer=ResourceTransformer(["pdf"]),
        resolver=TagResolver(backend),
        backend=backend,
        **kwargs,
    )


def _pdf_note(title: str, tags: tuple[str, ...] = ()) -> str:
    return note_xml(title, resources=[resource_xml(SAMPLE_PDF, "application/pdf", f"{title}.pdf")], tags=tags)


# ======================================================================
# Failure catcher / feeder
# ======================================================================


class TestFailureCatcher:
    @pytest.mark.asyncio
    async def test_drain_collects_until_closed(self) -> None:
        queue: asyncio.Queue = asyncio.Queue()
        for title in ("a", "b"):
            queue.put_nowait(make_note(title))
        await close_queue(queue)

        catcher = FailureCatcher()
        notes = await catcher.drain(queue)

        assert [n.title for n in notes] == ["a", "b"]
        assert [n.title for n in catcher.notes] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_feed_notes_replays_then_closes(self) -> None:
        queue: asyncio.Queue = asyncio.Queue()

        count = await feed_notes([make_note("x"), make_note("y")], queue, consumers=2)

        items = [queue.get_nowait() for _ in range(queue.qsize())]
        assert count == 2
        assert [i.title for i in items[:2]] == ["x", "y"]
        assert items[2:] == [CLOSED, CLOSED]


# ======================================================================
# Coordinator
# ======================================================================


class TestPipelineCoordinator:
    @pytest.mark.asyncio
    async def test_processes_all_notes_with_several_workers(
        self, write_enex: Callable[..., Path], fake_backend: FakeBackend
    ) -> None:
        path = write_enex(*(_pdf_note(f"note-{i}", tags=("Shared",)) for i in range(10)), note_xml("empty"))
        coordinator = _coordinator(fake_backend)

        result = await coordinator.process(path, ProcessOptions(concurrent_workers=4))

        assert result.notes_processed == 10
        assert result.files_uploaded == 10
        assert result.failed_notes == []
        assert result.succeeded is True
        assert result.cycles == 1
        assert fake_backend.create_calls == 1
        assert coordinator.phase is CyclePhase.DONE

    @pytest.mark.asyncio
    async def test_failures_without_prompt_are_returned(self, write_enex: Callable[..., Path]) -> None:
        backend = FakeBackend(failing_uploads=1)
        path = write_enex(_pdf_note("only"))

        result = await _coordinator(backend).process(path, ProcessOptions())

        assert result.notes_processed == 1
        assert result.files_uploaded == 0
        assert [n.title for n in result.failed_notes] == ["only"]
        assert result.cycles == 1

    @pytest.mark.asyncio
    async def test_retry_cycle_recovers_failed_notes(self, write_enex: Callable[..., Path]) -> None:
        backend = FakeBackend(failing_uploads=2)
        path = write_enex(_pdf_note("a"), _pdf_note("b"), _pdf_note("c"))
        prompts: list[int] = []

        def prompt(failed: int) -> bool:
            prompts.append(failed)
            return True

        result = await _coordinator(backend).process(
            path, ProcessOptions(concurrent_workers=2, retry_prompt=prompt)
        )

        assert prompts == [2]
        assert result.cycles == 2
        assert result.notes_processed == 3
        assert result.files_uploaded == 3
        assert result.failed_notes == []
        assert sorted(u.title for u in backend.uploads) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_declined_retry_stops(self, write_enex: Callable[..., Path]) -> None:
        backend = FakeBackend(failing_uploads=5)
        path = write_enex(_pdf_note("a"))

        result = await _coordinator(backend).process(
            path, ProcessOptions(retry_prompt=lambda failed: False)
        )

        assert result.cycles == 1
        assert len(result.failed_notes) == 1

    @pytest.mark.asyncio
    async def test_retry_until_prompt_declines(self, write_enex: Callable[..., Path]) -> None:
        backend = FakeBackend(failing_uploads=100)
        path = write_enex(_pdf_note("stubborn"))
        answers = iter([True, True, False])

        result = await _coordinator(backend).process(
            path, ProcessOptions(retry_prompt=lambda failed: next(answers))
        )

        assert result.cycles == 3
        assert result.notes_processed == 1
        assert [n.title for n in result.failed_notes] == ["stubborn"]

    @pytest.mark.asyncio
    async def test_zero_workers_rejected(self, write_enex: Callable[..., Path], fake_backend: FakeBackend) -> None:
        path = write_enex(_pdf_note("a"))

        with pytest.raises(PipelineError, match="at least 1"):
            await _coordinator(fake_backend).process(path, ProcessOptions(concurrent_workers=0))

    @pytest.mark.asyncio
    async def test_missing_input_rejected(self, tmp_path: Path, fake_backend: FakeBackend) -> None:
        coordinator = _coordinator(fake_backend)

        with pytest.raises(PipelineError, match="not found"):
            await coordinator.process(tmp_path / "missing.enex", ProcessOptions())
        assert coordinator.phase is CyclePhase.IDLE

    @pytest.mark.asyncio
    async def test_stream_fault_surfaces_as_error(self, tmp_path: Path, fake_backend: FakeBackend) -> None:
        path = tmp_path / "broken.enex"
        path.write_text(ENEX_HEADER + _pdf_note("first") + "<note><title>cut", encoding="utf-8")
        coordinator = _coordinator(fake_backend)

        with pytest.raises(NoteStreamError):
            await coordinator.process(path, ProcessOptions(concurrent_workers=2))
        assert coordinator.phase is CyclePhase.DONE

    @pytest.mark.asyncio
    async def test_disk_mode_writes_files(self, write_enex: Callable[..., Path], tmp_path: Path) -> None:
        backend = FakeBackend()
        out = tmp_path / "out"
        path = write_enex(_pdf_note("a"), _pdf_note("b"))

        result = await _coordinator(backend).process(
            path, ProcessOptions(concurrent_workers=2, output_folder=str(out))
        )

        assert result.files_uploaded == 2
        assert sorted(p.name for p in out.iterdir()) == ["a.pdf", "b.pdf"]
        assert backend.uploads == []

    @pytest.mark.asyncio
    async def test_extra_tags_are_applied(self, write_enex: Callable[..., Path]) -> None:
        backend = FakeBackend(existing_tags={"Imported": 9})
        path = write_enex(_pdf_note("a"))

        await _coordinator(backend, extra_tags=["Imported"]).process(path, ProcessOptions())

        assert backend.uploads[0].tag_ids == [9]
