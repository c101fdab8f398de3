"""
HOTP (HMAC-based One-Time Password) implementation following RFC 4226.
"""

import hashlib
import hmac
import struct

DIGITS = 6

MAX_COUNTER = 2**64


def generate_hotp(secret_bytes: bytes, counter: int, digits: int = DIGITS) -> str:
    """
    Generate an HOTP code with HMAC-SHA1 and dynamic truncation.

    Args:
        secret_bytes: Raw decoded secret bytes.
        counter:      Moving factor, 0 <= counter < 2**64.
        digits:       Number of OTP digits.

    Returns:
        Zero-padded OTP string of exactly ``digits`` characters.

    Raises:
        ValueError: If the secret is empty or the counter is out of range.
    """
    if not secret_bytes:
        raise ValueError("HOTP secret must not be empty.")
    if not 0 <= counter < MAX_COUNTER:
        raise ValueError(f"HOTP counter out of range: {counter}")

    msg = struct.pack(">Q", counter)
    digest = hmac.new(secret_bytes, msg, hashlib.sha1).digest()

    # Dynamic truncation (RFC 4226 §5.3)
    offset = digest[-1] & 0x0F
    (code,) = struct.unpack(">I", digest[offset : offset + 4])
    code &= 0x7FFFFFFF
    return str(code % 10**digits).zfill(digits)
