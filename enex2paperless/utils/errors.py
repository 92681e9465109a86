"""Custom exception hierarchy for enex2paperless.

All application exceptions inherit from :class:`Enex2PaperlessError`, which
carries an optional ``provider_name`` so error handlers can identify which
external system (e.g. "paperless", "filesystem") caused the failure.

The hierarchy is organized by pipeline concern:

    Enex2PaperlessError  (base -- catch-all for any enex2paperless error)
    +-- ConfigurationError        (startup / missing or invalid config)
    +-- PipelineError             (coordinator setup, invalid input)
    |   +-- NoteStreamError       (fatal XML stream fault)
    +-- ResourceError             (one attachment could not be prepared)
    |   +-- MimeTypeError         (MIME string is not ``type/subtype``)
    |   +-- PayloadValidationError (base64 alphabet check failed -> skip)
    |   +-- PayloadDecodeError    (base64 decoding failed -> note fails)
    |   +-- TimestampError        (note timestamp not ``YYYYMMDDThhmmssZ``)
    +-- ArchiveError              (container could not be read)
    |   +-- UnsafeArchiveEntryError (entry escapes the extraction root)
    +-- BackendError              (document-management backend failures)
        +-- BackendUnavailableError (transport failure / timeout)
        +-- BackendRequestError   (unexpected status on a read call)
        +-- TagCreationConflict   (tag creation refused, maybe a race)
        +-- TagResolutionError    (tag could not be found or created)
        +-- DocumentUploadError   (non-success response to an upload)

Workers catch the per-note subclasses and route the note to the failure
queue; only :class:`ConfigurationError` and :class:`PipelineError` escape the
top-level pipeline call.
"""


class Enex2PaperlessError(Exception):
    """Base exception for all enex2paperless errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external system triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[paperless] Upload rejected``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(Enex2PaperlessError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(Enex2PaperlessError):
    """Raised when the pipeline cannot start or cannot continue."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoteStreamError(PipelineError):
    """Raised when the export file stops being parseable mid-stream.

    This is the only fault that aborts a whole run.  The note queue is
    closed before it propagates so that workers still terminate cleanly.
    """

    def __init__(
        self,
        message: str = "Export stream could not be parsed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Per-resource errors
# ---------------------------------------------------------------------------

class ResourceError(Enex2PaperlessError):
    """Raised when a single attachment cannot be prepared for persistence."""

    def __init__(
        self,
        message: str = "Resource could not be processed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MimeTypeError(ResourceError):
    """Raised when a MIME string does not contain exactly one ``/``."""

    def __init__(
        self,
        message: str = "Invalid MIME type format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PayloadValidationError(ResourceError):
    """Raised when a payload is not base64 even after normalization.

    The resource is skipped; the owning note is not failed.
    """

    def __init__(
        self,
        message: str = "Data is not valid base64",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PayloadDecodeError(ResourceError):
    """Raised when a payload passes validation but cannot be decoded."""

    def __init__(
        self,
        message: str = "Resource data could not be decoded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TimestampError(ResourceError):
    """Raised when a note timestamp is not in ``YYYYMMDDThhmmssZ`` form."""

    def __init__(
        self,
        message: str = "Timestamp could not be parsed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Archive errors
# ---------------------------------------------------------------------------

class ArchiveError(Enex2PaperlessError):
    """Raised when a compressed container cannot be opened or read."""

    def __init__(
        self,
        message: str = "Archive could not be extracted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsafeArchiveEntryError(ArchiveError):
    """Raised for an archive entry whose path resolves outside the root."""

    def __init__(
        self,
        message: str = "Unsafe path in archive",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Document backend errors
# ---------------------------------------------------------------------------

class BackendError(Enex2PaperlessError):
    """Base class for failures talking to the document-management backend."""

    def __init__(
        self,
        message: str = "Document backend call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BackendUnavailableError(BackendError):
    """Raised when the backend is unreachable or the client timeout fires."""

    def __init__(
        self,
        message: str = "Document backend is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BackendRequestError(BackendError):
    """Raised when a read call returns an unexpected status code."""

    def __init__(
        self,
        message: str = "Unexpected response from document backend",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class TagCreationConflict(BackendError):
    """Raised when tag creation is refused.

    Usually a concurrent caller created the same tag first; the resolver
    re-queries once before treating it as a real failure.
    """

    def __init__(
        self,
        message: str = "Tag creation was refused",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class TagResolutionError(BackendError):
    """Raised when a tag can neither be found nor created."""

    def __init__(
        self,
        message: str = "Tag could not be resolved",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentUploadError(BackendError):
    """Raised when the backend answers a document upload with non-2xx."""

    def __init__(
        self,
        message: str = "Document upload failed",
        provider_name: str | None = None,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        self._status_code = status_code
        self._body = body
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def body(self) -> str:
        return self._body
