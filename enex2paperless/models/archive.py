"""Models for files unpacked from attachment archives."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ExtractedFile(BaseModel):
    """One regular file pulled out of a compressed container.

    ``path`` is where the entry was written under the extraction root,
    ``name`` is the entry name as stored in the archive, and
    ``archive_name`` is the file name of the container it came from.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    name: str
    data: bytes
    mime_type: str
    archive_name: str

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix
