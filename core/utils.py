"""
Utility helpers for TimeTrack TOTP.
"""

import secrets
import unicodedata

from core.base32 import encode

# ── Secrets ───────────────────────────────────────────────────────────────────

SECRET_SIZE = 20        # 160 bits, the RFC 4226 recommended key length
MIN_SECRET_SIZE = 16    # 128 bits, the RFC 4226 minimum


class EntropyError(RuntimeError):
    """The operating system's secure random source is unavailable."""


def generate_secret(num_bytes: int = SECRET_SIZE) -> str:
    """
    Generate a fresh random secret and return it Base32-encoded.

    Args:
        num_bytes: Amount of entropy in bytes (at least 16).

    Returns:
        Unpadded Base32 string.

    Raises:
        ValueError:   If ``num_bytes`` is below the minimum.
        EntropyError: If no secure random source is available.
    """
    if num_bytes < MIN_SECRET_SIZE:
        raise ValueError(f"Secrets must be at least {MIN_SECRET_SIZE} bytes.")
    try:
        raw = secrets.token_bytes(num_bytes)
    except (NotImplementedError, OSError) as exc:
        raise EntropyError(f"Secure random source unavailable: {exc}") from exc
    return encode(raw)


# ── Labels ────────────────────────────────────────────────────────────────────

def sanitise_label(text: str) -> str:
    """Remove control characters and limit label length."""
    text = unicodedata.normalize("NFC", text)
    text = "".join(ch for ch in text if unicodedata.category(ch)[0] != "C")
    return text[:128].strip()


# ── Display ───────────────────────────────────────────────────────────────────

def format_otp(code: str, group: int = 3) -> str:
    """
    Format an OTP code with spaces for readability.

    Example::

        >>> format_otp("123456")
        "123 456"
    """
    return " ".join(code[i : i + group] for i in range(0, len(code), group))
