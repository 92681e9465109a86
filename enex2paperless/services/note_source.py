"""Streaming reader for Evernote ENEX export files.

ENEX exports can be several gigabytes, mostly base64 attachment data, so
the file is never loaded whole.  ``xml.etree.ElementTree.iterparse`` walks
it one element at a time; when a ``<note>`` element closes it is converted
into a :class:`Note` and then cleared, together with everything already
attached to the root, so memory stays bounded by the largest single note.

    <en-export>
      <note>
        <title/> <content/> <created/> <updated/> <tag/>*
        <note-attributes/>
        <resource>
          <data encoding="base64"/> <mime/> <width/> <height/>
          <resource-attributes> <file-name/> ... </resource-attributes>
        </resource>*
      </note>*
    </en-export>

A note whose fields can't be converted is logged and skipped.  A fault in
the XML stream itself ends the run with :class:`NoteStreamError`.
"""

from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError

from enex2paperless.models.note import Note, NoteAttributes, Resource, ResourceAttributes
from enex2paperless.utils.concurrency import close_queue
from enex2paperless.utils.errors import NoteStreamError
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)

_NOTE_TAG = "note"


def iter_notes(path: Path | str) -> Iterator[Note]:
    """Yield every note in the export at *path*, in file order.

    Raises
    ------
    NoteStreamError
        If the file can't be opened or stops being well-formed XML.
    """
    path = Path(path)
    index = 0
    try:
        with open(path, "rb") as fh:
            context = ET.iterparse(fh, events=("start", "end"))
            root: ET.Element | None = None
            for event, elem in context:
                if root is None and event == "start":
                    root = elem
                    continue
                if event != "end" or elem.tag != _NOTE_TAG:
                    continue

                index += 1
                try:
                    note = note_from_element(elem)
                except (ValidationError, ValueError) as exc:
                    _logger.error(
                        "note_conversion_failed",
                        index=index,
                        title=elem.findtext("title", default=""),
                        error=str(exc),
                    )
                    note = None

                # Drop the parsed subtree so memory doesn't grow with the file.
                elem.clear()
                if root is not None:
                    root.clear()

                if note is not None:
                    yield note
    except ET.ParseError as exc:
        raise NoteStreamError(f"error parsing {path.name} after {index} notes: {exc}") from exc
    except OSError as exc:
        raise NoteStreamError(f"error reading {path}: {exc}") from exc


def note_from_element(elem: ET.Element) -> Note:
    """Convert a closed ``<note>`` element into a :class:`Note`."""
    tags = [tag.text.strip() for tag in elem.findall("tag") if tag.text and tag.text.strip()]

    attributes_elem = elem.find("note-attributes")
    note_attributes = (
        NoteAttributes(**_child_fields(attributes_elem))
        if attributes_elem is not None
        else NoteAttributes()
    )

    return Note(
        title=_text(elem, "title"),
        content=_text(elem, "content"),
        created=_text(elem, "created"),
        updated=_text(elem, "updated"),
        tags=tags,
        note_attributes=note_attributes,
        resources=[_resource_from_element(r) for r in elem.findall("resource")],
    )


def _resource_from_element(elem: ET.Element) -> Resource:
    attributes_elem = elem.find("resource-attributes")
    resource_attributes = (
        ResourceAttributes(**_child_fields(attributes_elem))
        if attributes_elem is not None
        else ResourceAttributes()
    )
    return Resource(
        data=elem.findtext("data", default=""),
        mime=_text(elem, "mime"),
        width=_text(elem, "width") or None,
        height=_text(elem, "height") or None,
        resource_attributes=resource_attributes,
    )


def _child_fields(elem: ET.Element) -> dict[str, Any]:
    # <camera-make>X</camera-make> -> {"camera_make": "X"}; empty children
    # are left out so optional numeric fields stay None.
    fields: dict[str, Any] = {}
    for child in elem:
        value = (child.text or "").strip()
        if value:
            fields[child.tag.replace("-", "_")] = value
    return fields


def _text(elem: ET.Element, tag: str) -> str:
    return (elem.findtext(tag, default="") or "").strip()


class NoteSource:
    """Async producer that feeds notes from an export file into a queue.

    Parsing is blocking, so each step of :func:`iter_notes` runs in a worker
    thread; the queue ``put`` happens on the event loop and suspends while
    all consumers are busy.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    async def stream(self, queue: asyncio.Queue, consumers: int = 1) -> int:
        """Put every note on *queue*, then close it for *consumers* readers.

        The queue is closed even when parsing fails, so consumers always
        terminate.  Returns the number of notes produced.

        Raises
        ------
        NoteStreamError
            If the export can't be parsed to the end.
        """
        notes = iter_notes(self._path)
        produced = 0
        try:
            while True:
                note = await asyncio.to_thread(next, notes, None)
                if note is None:
                    break
                await queue.put(note)
                produced += 1
        except NoteStreamError as exc:
            _logger.error("note_stream_failed", path=str(self._path), error=str(exc))
            raise
        finally:
            notes.close()
            await close_queue(queue, consumers)

        _logger.debug("note_stream_complete", path=str(self._path), notes=produced)
        return produced
