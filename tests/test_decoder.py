"""
Tests for turning raw .amz file contents back into manifest markup.
"""

import base64
import logging

import pytest
from conftest import SAMPLE_MANIFEST, encrypt_manifest
from Crypto.Cipher import DES

from amz_cli.exceptions import InvalidEncodingError, ManifestDecodeError
from amz_cli.manifest.decoder import (
    LEGACY_IV,
    LEGACY_KEY,
    base64_decode,
    decode_manifest,
    decrypt,
    is_plain_markup,
    strip_padding,
)


class TestPlainMarkup:
    def test_plain_manifest_is_returned_unchanged(self):
        assert decode_manifest(SAMPLE_MANIFEST, "plain.amz") == SAMPLE_MANIFEST

    def test_leading_whitespace_is_kept(self):
        data = b" \r\n\t<playlist/>\n"
        assert decode_manifest(data, "plain.amz") == data

    @pytest.mark.parametrize(
        "data, expected",
        [
            (b"<playlist/>", True),
            (b"\n\n  <x/>", True),
            (b"\xef\xbb\xbf<playlist/>", True),
            (b"U2FsdGVk", False),
            (b"", False),
            (b"   \n", False),
        ],
    )
    def test_detection(self, data, expected):
        assert is_plain_markup(data) is expected


class TestEncryptedManifest:
    def test_round_trip(self):
        data = encrypt_manifest(SAMPLE_MANIFEST)
        assert decode_manifest(data, "purchase.amz") == SAMPLE_MANIFEST

    def test_round_trip_without_line_breaks(self):
        data = encrypt_manifest(SAMPLE_MANIFEST, line_length=10_000).strip()
        assert decode_manifest(data, "purchase.amz") == SAMPLE_MANIFEST

    def test_whitespace_and_padding_are_ignored_anywhere(self):
        data = encrypt_manifest(SAMPLE_MANIFEST)
        scattered = b" \t".join(data[i : i + 5] for i in range(0, len(data), 5))
        assert decode_manifest(b"==" + scattered, "purchase.amz") == SAMPLE_MANIFEST

    def test_length_not_a_multiple_of_block_size_is_truncated(self, caplog):
        markup = b"<playlist><title>x</title></playlist>\n"
        padded = markup + b"\x00" * (-len(markup) % DES.block_size)
        ciphertext = DES.new(LEGACY_KEY, DES.MODE_CBC, iv=LEGACY_IV).encrypt(padded)
        data = base64.b64encode(ciphertext + b"\x01\x02\x03")

        with caplog.at_level(logging.WARNING, logger="amz_cli.manifest.decoder"):
            assert decode_manifest(data, "short.amz") == markup

        assert "3 mod 8" in caplog.text

    def test_truncation_rounds_down(self):
        plaintext = decrypt(bytes(15), "odd.amz")
        assert len(plaintext) == 8


class TestBase64:
    def test_ignores_whitespace(self):
        assert base64_decode(b"aGVs\r\nbG8=\n", "f") == b"hello"

    def test_missing_padding(self):
        assert base64_decode(b"aGVsbG8", "f") == b"hello"

    def test_lone_trailing_character_is_dropped(self):
        assert base64_decode(b"aGVsbG8hQ", "f") == b"hello!"

    @pytest.mark.parametrize("data", [b"aGV#sbG8=", b"aGVs\x80bG8=", b"aGVs-bG8="])
    def test_invalid_byte_raises(self, data):
        with pytest.raises(InvalidEncodingError) as exc_info:
            base64_decode(data, "broken.amz")
        assert "broken.amz" in str(exc_info.value)

    def test_invalid_manifest_is_a_decode_error(self):
        with pytest.raises(ManifestDecodeError):
            decode_manifest(b"not base64 at all!", "broken.amz")


class TestStripPadding:
    @pytest.mark.parametrize(
        "plaintext, expected",
        [
            (b"<a/>\x03\x03\x03", b"<a/>"),
            (b"<a/>\n\x00\x00", b"<a/>\n"),
            (b"<a/>\r\n\x07", b"<a/>\r\n"),
            (b"<a/>\x05\r\x05", b"<a/>\x05\r"),
            (b"<a/>", b"<a/>"),
            (b"\x01\x02", b""),
        ],
    )
    def test_trailing_control_bytes(self, plaintext, expected):
        assert strip_padding(plaintext) == expected
