"""Public interface definitions for external systems.

Concrete adapters implement these interfaces and are injected at runtime,
so business logic never touches ``httpx`` directly and tests can swap in
fakes.

    Interface          →  Concrete implementations (in enex2paperless/providers/)
    ─────────────────────────────────────────────────────────────────────
    IDocumentBackend   →  PaperlessProvider
"""

from enex2paperless.interfaces.document_backend import DocumentUpload, IDocumentBackend

__all__ = [
    "DocumentUpload",
    "IDocumentBackend",
]
