"""Paperless-NGX document backend adapter."""

from enex2paperless.providers.paperless.paperless_provider import PaperlessProvider

__all__ = ["PaperlessProvider"]
