"""Attachment filtering, decoding and naming helpers.

A resource goes through the transformer in two steps:

1. **Admission** -- :meth:`ResourceTransformer.is_wanted` compares the MIME
   subtype against the configured admission list.  ``"any"`` admits every
   type, ``"txt"`` stands for the ``text/plain`` subtype, and all
   comparisons ignore case.
2. **Decoding** -- :meth:`ResourceTransformer.decode` normalizes the
   exported base64 text (line breaks, spaces, missing padding), checks it
   against the base64 alphabet and decodes it.

The module-level helpers cover the other small conversions a worker needs:
timestamp reformatting, filename sanitizing and extension-based MIME
inference for archive entries.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, timezone
from pathlib import PurePath

from enex2paperless.models.note import Resource
from enex2paperless.utils.errors import (
    MimeTypeError,
    PayloadDecodeError,
    PayloadValidationError,
    TimestampError,
)

WILDCARD_FILE_TYPE = "any"

_VALID_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
_INVALID_FILENAME_CHARS_RE = re.compile(r'[/\\:*?"<>|]')

_ENEX_TIME_FORMAT = "%Y%m%dT%H%M%SZ"
_PAPERLESS_TIME_FORMAT = "%Y-%m-%d %H:%M:%S%z"

# Admission tokens that differ from the MIME subtype they stand for.
_TOKEN_ALIASES: dict[str, str] = {
    "txt": "plain",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

_MIME_BY_EXTENSION: dict[str, str] = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}


class ResourceTransformer:
    """Decides which attachments are wanted and decodes their payloads.

    Parameters
    ----------
    file_types:
        Admission list of subtype tokens such as ``["pdf", "jpeg"]``, or
        ``["any"]`` to admit everything.
    """

    def __init__(self, file_types: list[str]) -> None:
        normalized = [token.strip().lower() for token in file_types if token.strip()]
        self._admit_all = WILDCARD_FILE_TYPE in normalized
        self._allowed = frozenset(_TOKEN_ALIASES.get(token, token) for token in normalized)

    def is_wanted(self, mime_type: str) -> bool:
        """Return True when *mime_type* passes the admission list.

        Raises
        ------
        MimeTypeError
            If the MIME string is malformed and the wildcard is not set.
        """
        if self._admit_all:
            return True

        subtype = extension_from_mime(mime_type).lower()
        return subtype in self._allowed

    def decode(self, resource: Resource) -> bytes:
        """Decode *resource*'s payload.  See :func:`decode_payload`."""
        return decode_payload(resource.data)


def extension_from_mime(mime_type: str) -> str:
    """Return the subtype of ``type/subtype``.

    Raises
    ------
    MimeTypeError
        Unless *mime_type* contains exactly one ``/``.
    """
    parts = mime_type.split("/")
    if len(parts) != 2:
        raise MimeTypeError(f"invalid MIME type format: {mime_type!r}")
    return parts[1]


def decode_payload(data: str) -> bytes:
    """Normalize and decode a base64 payload from an export file.

    Embedded newlines, carriage returns and spaces are stripped and the
    text is padded with ``=`` up to a multiple of four.

    Raises
    ------
    PayloadValidationError
        If the normalized text contains characters outside the base64
        alphabet.  The resource should be skipped.
    PayloadDecodeError
        If the text looks like base64 but still cannot be decoded.  The
        note should be failed and retried.
    """
    normalized = data.replace("\n", "").replace("\r", "").replace(" ", "")

    remainder = len(normalized) % 4
    if remainder:
        normalized += "=" * (4 - remainder)

    if not _VALID_BASE64_RE.match(normalized):
        raise PayloadValidationError("data is not valid base64")

    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeError(f"error decoding resource data: {exc}") from exc


def convert_date_format(date_str: str) -> str:
    """Reformat ``20220101T120000Z`` as ``2022-01-01 12:00:00+00:00``.

    Raises
    ------
    TimestampError
        If *date_str* is not in the export's timestamp form.
    """
    try:
        parsed = datetime.strptime(date_str, _ENEX_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except (TypeError, ValueError) as exc:
        raise TimestampError(f"error parsing time {date_str!r}: {exc}") from exc

    formatted = parsed.strftime(_PAPERLESS_TIME_FORMAT)
    # strftime renders the offset as +0000; Paperless expects +00:00.
    return f"{formatted[:-2]}:{formatted[-2:]}"


def sanitize_filename(name: str) -> str:
    """Make *name* safe to use as a single path component.

    Characters that are invalid on common filesystems are replaced with
    ``_`` and surrounding whitespace is trimmed; an empty result becomes
    ``"unnamed"``.
    """
    cleaned = _INVALID_FILENAME_CHARS_RE.sub("_", name).strip()
    return cleaned or "unnamed"


def mime_from_filename(file_name: str) -> str:
    """Infer a MIME type from *file_name*'s extension."""
    return _MIME_BY_EXTENSION.get(PurePath(file_name).suffix.lower(), DEFAULT_MIME_TYPE)
