"""Abstract base class for document-management backends.

Defines the contract the upload workers and the tag resolver use to talk to
the system that receives the migrated attachments.  The concrete adapter is
:class:`~enex2paperless.providers.paperless.PaperlessProvider`; tests inject
an in-memory fake implementing the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class DocumentUpload(BaseModel):
    """Everything needed for one document upload request."""

    model_config = ConfigDict(frozen=True)

    title: str
    # Already reformatted to "YYYY-MM-DD HH:MM:SS+00:00".
    created: str
    tag_ids: list[int] = Field(default_factory=list)
    file_name: str
    mime_type: str
    data: bytes


class IDocumentBackend(ABC):
    """Contract for document-management backends.

    All operations are async so that network-backed implementations do not
    block the event loop.  Implementations translate transport and HTTP
    failures into :class:`~enex2paperless.utils.errors.BackendError`
    subclasses.
    """

    @abstractmethod
    async def find_tag(self, name: str) -> int | None:
        """Look up a tag by exact, case-insensitive name.

        Returns
        -------
        int or None
            The tag identifier, or ``None`` when no such tag exists.
            A missing tag is not an error.
        """

    @abstractmethod
    async def create_tag(self, name: str) -> int:
        """Create a tag and return its identifier.

        Raises
        ------
        TagCreationConflict
            If the backend refuses the creation, typically because another
            caller created the same tag first.
        """

    @abstractmethod
    async def upload_document(self, upload: DocumentUpload) -> None:
        """Submit one document.

        Raises
        ------
        DocumentUploadError
            If the backend answers with a non-success status.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error messages."""
