"""Unit tests for enex2paperless.services.resource_transformer."""

from __future__ import annotations

import base64
import binascii
from unittest.mock import patch

import pytest

from enex2paperless.models.note import Resource
from enex2paperless.services.resource_transformer import (
    DEFAULT_MIME_TYPE,
    ResourceTransformer,
    convert_date_format,
    decode_payload,
    extension_from_mime,
    mime_from_filename,
    sanitize_filename,
)
from enex2paperless.utils.errors import (
    MimeTypeError,
    PayloadDecodeError,
    PayloadValidationError,
    TimestampError,
)


# ======================================================================
# Admission filter
# ======================================================================


class TestIsWanted:
    @pytest.mark.parametrize(
        ("file_types", "mime", "expected"),
        [
            (["pdf"], "application/pdf", True),
            (["pdf"], "image/jpeg", False),
            (["PDF"], "application/pdf", True),
            (["pdf"], "application/PDF", True),
            (["txt"], "text/plain", True),
            (["plain"], "text/plain", True),
            (["txt"], "application/pdf", False),
            (["jpeg", "png"], "image/png", True),
            (["any"], "application/x-whatever", True),
            (["pdf", "any"], "image/gif", True),
        ],
    )
    def test_admission_matrix(self, file_types: list[str], mime: str, expected: bool) -> None:
        assert ResourceTransformer(file_types).is_wanted(mime) is expected

    def test_wildcard_admits_malformed_mime(self) -> None:
        transformer = ResourceTransformer(["any"])
        assert transformer.is_wanted("invalid") is True
        assert transformer.is_wanted("") is True

    @pytest.mark.parametrize("mime", ["invalid", "", "a/b/c"])
    def test_malformed_mime_raises_without_wildcard(self, mime: str) -> None:
        with pytest.raises(MimeTypeError):
            ResourceTransformer(["pdf"]).is_wanted(mime)

    def test_blank_tokens_are_ignored(self) -> None:
        transformer = ResourceTransformer(["", "  ", "pdf"])
        assert transformer.is_wanted("application/pdf") is True
        assert transformer.is_wanted("image/gif") is False


class TestExtensionFromMime:
    def test_returns_subtype(self) -> None:
        assert extension_from_mime("application/pdf") == "pdf"
        assert extension_from_mime("image/svg+xml") == "svg+xml"

    @pytest.mark.parametrize("mime", ["invalid", "", "text/plain/extra"])
    def test_rejects_other_shapes(self, mime: str) -> None:
        with pytest.raises(MimeTypeError):
            extension_from_mime(mime)


# ======================================================================
# Payload decoding
# ======================================================================


class TestDecodePayload:
    def test_decodes_wrapped_base64(self) -> None:
        raw = b"hello world, this is a fairly long payload " * 5
        encoded = base64.b64encode(raw).decode()
        wrapped = "\n".join(encoded[i:i + 20] for i in range(0, len(encoded), 20))
        assert decode_payload(wrapped) == raw

    def test_strips_spaces_and_carriage_returns(self) -> None:
        encoded = base64.b64encode(b"abcdef").decode()
        assert decode_payload(f" {encoded[:4]}\r\n {encoded[4:]} ") == b"abcdef"

    def test_restores_missing_padding(self) -> None:
        encoded = base64.b64encode(b"abcd").decode()  # "YWJjZA=="
        assert decode_payload(encoded.rstrip("=")) == b"abcd"

    def test_invalid_alphabet_raises_validation_error(self) -> None:
        with pytest.raises(PayloadValidationError):
            decode_payload("not*base64!")

    def test_impossible_length_fails_validation(self) -> None:
        # Five symbols pad to "AAAAA===", one "=" too many.
        with pytest.raises(PayloadValidationError):
            decode_payload("AAAAA")

    def test_misplaced_padding_fails_validation(self) -> None:
        with pytest.raises(PayloadValidationError):
            decode_payload("AA=A")

    def test_decoder_failure_raises_decode_error(self) -> None:
        with patch(
            "enex2paperless.services.resource_transformer.base64.b64decode",
            side_effect=binascii.Error("Incorrect padding"),
        ):
            with pytest.raises(PayloadDecodeError, match="Incorrect padding"):
                decode_payload("QUJD")

    def test_transformer_decodes_resource(self) -> None:
        resource = Resource(data=base64.b64encode(b"%PDF").decode(), mime="application/pdf")
        assert ResourceTransformer(["pdf"]).decode(resource) == b"%PDF"


# ======================================================================
# Timestamps, names and MIME inference
# ======================================================================


class TestConvertDateFormat:
    def test_converts_export_timestamp(self) -> None:
        assert convert_date_format("20220101T120000Z") == "2022-01-01 12:00:00+00:00"

    def test_converts_end_of_year(self) -> None:
        assert convert_date_format("20231231T235959Z") == "2023-12-31 23:59:59+00:00"

    @pytest.mark.parametrize("value", ["invaliddate", "", "2022-01-01T12:00:00Z"])
    def test_rejects_other_formats(self, value: str) -> None:
        with pytest.raises(TimestampError):
            convert_date_format(value)


class TestSanitizeFilename:
    def test_replaces_invalid_characters(self) -> None:
        assert sanitize_filename('a/b\\c:d*e?f"g<h>i|j.pdf') == "a_b_c_d_e_f_g_h_i_j.pdf"

    def test_trims_whitespace(self) -> None:
        assert sanitize_filename("  report.pdf  ") == "report.pdf"

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_becomes_unnamed(self, value: str) -> None:
        assert sanitize_filename(value) == "unnamed"


class TestMimeFromFilename:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("doc.pdf", "application/pdf"),
            ("DOC.PDF", "application/pdf"),
            ("notes.txt", "text/plain"),
            ("photo.jpg", "image/jpeg"),
            ("photo.jpeg", "image/jpeg"),
            ("image.png", "image/png"),
            ("anim.gif", "image/gif"),
            ("pic.webp", "image/webp"),
            ("scan.tif", "image/tiff"),
            ("scan.tiff", "image/tiff"),
            ("archive.bin", DEFAULT_MIME_TYPE),
            ("no_extension", DEFAULT_MIME_TYPE),
        ],
    )
    def test_extension_table(self, name: str, expected: str) -> None:
        assert mime_from_filename(name) == expected
