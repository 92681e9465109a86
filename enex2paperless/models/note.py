"""Note and resource models decoded from an ENEX export.

Each ``<note>`` element of the export becomes one :class:`Note`; each
``<resource>`` child becomes one :class:`Resource`.  The models are frozen:
a note is produced once by the parser, handed to exactly one worker and,
if it fails, handed back unchanged to a later retry cycle.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NoteAttributes(BaseModel):
    """Optional ``<note-attributes>`` metadata (geo / author / source)."""

    model_config = ConfigDict(frozen=True)

    author: str = ""
    source: str = ""
    source_url: str = ""
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None


class ResourceAttributes(BaseModel):
    """``<resource-attributes>`` of one attachment."""

    model_config = ConfigDict(frozen=True)

    source_url: str = ""
    timestamp: str = ""
    file_name: str = ""
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    camera_make: str = ""
    camera_model: str = ""
    attachment: bool = False
    application_data: str = ""


class Resource(BaseModel):
    """One base64-embedded attachment of a note.

    ``data`` is kept exactly as exported: it may contain line breaks and
    spaces and may be missing its ``=`` padding.  Decoding happens in the
    resource transformer, not here.
    """

    model_config = ConfigDict(frozen=True)

    data: str = ""
    mime: str = ""
    width: int | None = None
    height: int | None = None
    resource_attributes: ResourceAttributes = Field(default_factory=ResourceAttributes)

    @property
    def file_name(self) -> str:
        return self.resource_attributes.file_name


class Note(BaseModel):
    """A single note record from the export file."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    content: str = ""
    # Evernote timestamps: YYYYMMDDThhmmssZ
    created: str = ""
    updated: str = ""
    tags: list[str] = Field(default_factory=list)
    note_attributes: NoteAttributes = Field(default_factory=NoteAttributes)
    resources: list[Resource] = Field(default_factory=list)

    @property
    def has_resources(self) -> bool:
        return len(self.resources) > 0

    def with_extra_tags(self, extra_tags: list[str]) -> Note:
        """Return a copy whose tags also include *extra_tags*.

        Order is preserved and duplicates are dropped; the note itself is
        not modified.
        """
        if not extra_tags:
            return self
        merged = list(dict.fromkeys([*self.tags, *extra_tags]))
        return self.model_copy(update={"tags": merged})
