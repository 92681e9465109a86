"""Shared pytest fixtures for the enex2paperless test suite."""

from __future__ import annotations

import asyncio
import base64
import io
import struct
import zipfile
from collections.abc import Callable, Iterable
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

from enex2paperless.interfaces.document_backend import DocumentUpload, IDocumentBackend
from enex2paperless.models.note import Note, Resource, ResourceAttributes
from enex2paperless.utils.errors import DocumentUploadError, TagCreationConflict

SAMPLE_PDF = b"%PDF-1.4\n1 0 obj<</Type/Catalog>>endobj\ntrailer<</Root 1 0 R>>\n%%EOF\n"
SAMPLE_PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"

ENEX_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE en-export SYSTEM "http://xml.evernote.com/pub/evernote-export3.dtd">\n'
    '<en-export export-date="20240101T000000Z" application="Evernote" version="10.0">\n'
)
ENEX_FOOTER = "</en-export>\n"


# ---------------------------------------------------------------------------
# ENEX builders
# ---------------------------------------------------------------------------


def encode_payload(data: bytes, line_length: int = 76) -> str:
    """Base64 the way Evernote exports it: wrapped lines."""
    encoded = base64.b64encode(data).decode("ascii")
    return "\n".join(encoded[i:i + line_length] for i in range(0, len(encoded), line_length))


def resource_xml(data: bytes, mime: str, file_name: str | None = None) -> str:
    attributes = ""
    if file_name is not None:
        attributes = (
            "<resource-attributes>"
            f"<file-name>{escape(file_name)}</file-name>"
            "</resource-attributes>"
        )
    return (
        "<resource>"
        f'<data encoding="base64">\n{encode_payload(data)}\n</data>'
        f"<mime>{mime}</mime>"
        f"{attributes}"
        "</resource>"
    )


def note_xml(
    title: str,
    resources: Iterable[str] = (),
    tags: Iterable[str] = (),
    created: str = "20220101T120000Z",
    updated: str = "20220102T080000Z",
) -> str:
    tag_xml = "".join(f"<tag>{escape(tag)}</tag>" for tag in tags)
    return (
        "<note>"
        f"<title>{escape(title)}</title>"
        '<content><![CDATA[<?xml version="1.0" encoding="UTF-8"?>'
        "<en-note><div>body</div></en-note>]]></content>"
        f"<created>{created}</created>"
        f"<updated>{updated}</updated>"
        f"{tag_xml}"
        "<note-attributes><author>tester</author></note-attributes>"
        f"{''.join(resources)}"
        "</note>\n"
    )


def enex_document(*notes: str) -> str:
    return ENEX_HEADER + "".join(notes) + ENEX_FOOTER


def make_resource(data: bytes, mime: str = "application/pdf", file_name: str = "doc.pdf") -> Resource:
    return Resource(
        data=encode_payload(data),
        mime=mime,
        resource_attributes=ResourceAttributes(file_name=file_name),
    )


def make_note(
    title: str = "Note",
    resources: list[Resource] | None = None,
    tags: list[str] | None = None,
    created: str = "20220101T120000Z",
) -> Note:
    return Note(title=title, created=created, tags=tags or [], resources=resources or [])


def make_zip(entries: dict[str, bytes], compression: int = zipfile.ZIP_STORED) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def corrupt_zip_entry(data: bytes, name: str) -> bytes:
    """Overwrite the compressed body of entry *name* so inflating it fails."""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        info = archive.getinfo(name)
    raw = bytearray(data)
    # Local header: 30 fixed bytes, then the file name and extra field.
    name_len, extra_len = struct.unpack_from("<HH", raw, info.header_offset + 26)
    start = info.header_offset + 30 + name_len + extra_len
    # 0xff starts a deflate block of the reserved type 3.
    raw[start:start + info.compress_size] = b"\xff" * info.compress_size
    return bytes(raw)


@pytest.fixture
def write_enex(tmp_path: Path) -> Callable[..., Path]:
    """Write an export file built from note XML fragments and return its path."""

    def _write(*notes: str, name: str = "export.enex") -> Path:
        path = tmp_path / name
        path.write_text(enex_document(*notes), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# In-memory document backend
# ---------------------------------------------------------------------------


class FakeBackend(IDocumentBackend):
    """Records calls and keeps tags in a dict.

    Every call yields to the event loop once so concurrent callers
    actually interleave.
    """

    def __init__(
        self,
        existing_tags: dict[str, int] | None = None,
        failing_uploads: int = 0,
        refuse_tag_creation: bool = False,
    ) -> None:
        self.tags: dict[str, int] = {k.casefold(): v for k, v in (existing_tags or {}).items()}
        self.uploads: list[DocumentUpload] = []
        self.find_calls = 0
        self.create_calls = 0
        self.failing_uploads = failing_uploads
        self.refuse_tag_creation = refuse_tag_creation
        self._next_id = max(self.tags.values(), default=0) + 1

    async def find_tag(self, name: str) -> int | None:
        await asyncio.sleep(0)
        self.find_calls += 1
        return self.tags.get(name.casefold())

    async def create_tag(self, name: str) -> int:
        await asyncio.sleep(0)
        self.create_calls += 1
        if self.refuse_tag_creation:
            raise TagCreationConflict(
                message=f"creating tag {name!r} returned 400",
                provider_name="fake",
                status_code=400,
            )
        tag_id = self._next_id
        self._next_id += 1
        self.tags[name.casefold()] = tag_id
        return tag_id

    async def upload_document(self, upload: DocumentUpload) -> None:
        await asyncio.sleep(0)
        if self.failing_uploads > 0:
            self.failing_uploads -= 1
            raise DocumentUploadError(
                message="non 2xx status code received (500): boom",
                provider_name="fake",
                status_code=500,
                body="boom",
            )
        self.uploads.append(upload)

    def get_provider_name(self) -> str:
        return "fake"


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()
