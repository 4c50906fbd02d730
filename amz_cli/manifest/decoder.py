"""
Turns raw .amz file contents into manifest markup.

Most .amz files are base64 text wrapping a DES-CBC encrypted XML document,
some are plain XML. Both forms are accepted.
"""

import base64
import logging

from Crypto.Cipher import DES

from amz_cli.exceptions import CryptoError, InvalidEncodingError

log = logging.getLogger(__name__)

# Fixed obfuscation constants shared by every .amz file ever issued
LEGACY_KEY = bytes([0x29, 0xAB, 0x9D, 0x18, 0xB2, 0x44, 0x9E, 0x31])
LEGACY_IV = bytes([0x5E, 0x72, 0xD7, 0x9A, 0x11, 0xB3, 0x4F, 0xEE])

BLOCK_SIZE = DES.block_size

_BASE64_ALPHABET = (
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
)
# '=' and anything up to and including space may appear anywhere
_BASE64_IGNORED = bytes(range(0x21)) + b"="
# Trailing bytes stripped after decryption: control bytes except CR and LF
_PADDING_BYTES = bytes(b for b in range(0x20) if b not in (0x0A, 0x0D))


def is_plain_markup(data: bytes) -> bool:
    """True if the first printable ASCII byte of `data` opens a tag."""
    for byte in data:
        if 0x20 < byte <= 0x7E:
            return byte == ord("<")
    return False


def base64_decode(data: bytes, filename: str) -> bytes:
    """
    Decodes base64 text, tolerating embedded whitespace and stray padding.

    Raises:
        InvalidEncodingError: If `data` contains a byte outside the base64
        alphabet that is not whitespace or '='.
    """
    stripped = data.translate(None, _BASE64_IGNORED)
    if stripped.translate(None, _BASE64_ALPHABET):
        raise InvalidEncodingError(f"Invalid base64 data in AMZ file '{filename}'")

    # A lone trailing sextet carries less than one byte.
    if len(stripped) % 4 == 1:
        stripped = stripped[:-1]
    stripped += b"=" * (-len(stripped) % 4)
    return base64.b64decode(stripped)


def decrypt(ciphertext: bytes, filename: str) -> bytes:
    """
    Decrypts `ciphertext` with the legacy key and IV.

    The input is truncated down to a whole number of cipher blocks first;
    the excess bytes are dropped with a warning.
    """
    excess = len(ciphertext) % BLOCK_SIZE
    if excess:
        log.warning(
            f"[yellow]'{filename}': length = {excess} mod {BLOCK_SIZE}, "
            "discarding excess bytes[/yellow]"
        )
        ciphertext = ciphertext[: len(ciphertext) - excess]

    try:
        cipher = DES.new(LEGACY_KEY, DES.MODE_CBC, iv=LEGACY_IV)
        return cipher.decrypt(ciphertext)
    except (ValueError, TypeError) as e:
        raise CryptoError(f"Unable to decrypt AMZ file '{filename}' ({e})") from e


def strip_padding(plaintext: bytes) -> bytes:
    """
    Removes cipher padding from the end of decrypted markup.

    Scanning backward, every byte below 0x20 other than CR or LF is dropped;
    the scan stops at the first printable byte, CR or LF.
    """
    return plaintext.rstrip(_PADDING_BYTES)


def decode_manifest(data: bytes, filename: str) -> bytes:
    """
    Returns the markup held by a .amz file.

    Args:
        data: The complete, unmodified file contents.
        filename: Name of the file, used in diagnostics only.

    Returns:
        The markup bytes. Plain XML input is returned unchanged.

    Raises:
        InvalidEncodingError: The encrypted form is not valid base64.
        CryptoError: Decryption failed.
    """
    if is_plain_markup(data):
        log.debug(f"'{filename}' is not encrypted")
        return bytes(data)

    ciphertext = base64_decode(data, filename)
    return strip_padding(decrypt(ciphertext, filename))
