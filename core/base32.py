"""
Base32 codec (RFC 4648 alphabet, no padding) for TOTP secrets.

Authenticator apps exchange secrets as unpadded Base32.  Two decoders are
provided:

* :func:`decode` is lenient: it silently skips anything outside the alphabet.
* :func:`decode_strict` normalises user input first, then rejects anything
  that is still not valid Base32 with :class:`DecodeError`.
"""

import base64
import re
from types import MappingProxyType
from typing import Mapping

# ── Alphabet ──────────────────────────────────────────────────────────────────

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

_LOOKUP: Mapping[str, int] = MappingProxyType(
    {char: value for value, char in enumerate(ALPHABET)}
)

# Lengths (mod 8) that no unpadded encoder output can have.
_IMPOSSIBLE_TAILS = frozenset({1, 3, 6})

_SEPARATORS = re.compile(r"[\s\-]+")


class DecodeError(ValueError):
    """Raised by :func:`decode_strict` for input that is not valid Base32."""


# ── Encoding ──────────────────────────────────────────────────────────────────

def encode(data: bytes) -> str:
    """
    Encode ``data`` as unpadded Base32.

    A trailing group of fewer than five bits is padded with zero bits on
    the right; the RFC 4648 ``=`` padding is stripped.

    Args:
        data: Raw bytes (may be empty).

    Returns:
        Base32 string without ``=`` padding.
    """
    return base64.b32encode(data).decode("ascii").rstrip("=")


# ── Decoding ──────────────────────────────────────────────────────────────────

def decode(text: str) -> bytes:
    """
    Leniently decode a Base32 string.

    The input is uppercased and every character outside the alphabet is
    skipped.  Leftover bits that do not make up a whole byte are discarded.
    """
    out = bytearray()
    buffer = 0
    bits = 0
    for char in text.upper():
        value = _LOOKUP.get(char)
        if value is None:
            continue
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(out)


def normalize_secret(text: str) -> str:
    """
    Normalise a user-supplied secret: drop whitespace, dashes and trailing
    ``=`` padding, then uppercase.

    Example::

        >>> normalize_secret("gezd gnbv-gy3t qojq==")
        "GEZDGNBVGY3TQOJQ"
    """
    return _SEPARATORS.sub("", text).rstrip("=").upper()


def decode_strict(text: str) -> bytes:
    """
    Normalise and decode a Base32 secret, rejecting invalid input.

    Args:
        text: Base32 secret as typed or pasted by a user.

    Returns:
        Raw secret bytes (never empty).

    Raises:
        DecodeError: If the normalised text is empty, contains characters
            outside the alphabet, or has a length no encoder can produce.
    """
    secret = normalize_secret(text)
    if not secret:
        raise DecodeError("Secret is empty.")

    invalid = sorted({ch for ch in secret if ch not in _LOOKUP})
    if invalid:
        raise DecodeError(
            f"Secret contains invalid base32 characters: {''.join(invalid)!r}."
        )
    if len(secret) % 8 in _IMPOSSIBLE_TAILS:
        raise DecodeError(f"Secret has an invalid base32 length ({len(secret)}).")

    data = decode(secret)
    if not data:
        raise DecodeError("Secret decodes to no data.")
    return data
