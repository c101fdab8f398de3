"""
Password-based sealing of TOTP secrets for hand-off to a backing store.

Key derivation  : PBKDF2-HMAC-SHA256
Encryption      : AES-256-GCM (authenticated encryption)

Sealed token layout (before urlsafe base64)::

    [ version (1) | salt (32) | nonce (12) | ciphertext+tag ]

The version byte is authenticated as associated data.
"""

import base64
import binascii
import hashlib
import logging
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

FORMAT_VERSION = 1
SALT_SIZE = 32          # 256-bit salt
NONCE_SIZE = 12         # 96-bit nonce (GCM recommendation)
KEY_SIZE = 32           # 256-bit AES key
TAG_SIZE = 16
PBKDF2_ITERATIONS = 480_000  # OWASP 2023 recommendation for PBKDF2-SHA256
PBKDF2_HASH = "sha256"

_HEADER_SIZE = 1 + SALT_SIZE + NONCE_SIZE


class SealError(ValueError):
    """A sealed secret could not be opened (bad token or wrong password)."""


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 256-bit key from ``password`` using PBKDF2-HMAC-SHA256."""
    return hashlib.pbkdf2_hmac(
        PBKDF2_HASH,
        password.encode("utf-8"),
        salt,
        PBKDF2_ITERATIONS,
        dklen=KEY_SIZE,
    )


# ── Seal / open ──────────────────────────────────────────────────────────────

def seal_secret(secret: str, password: str) -> str:
    """
    Encrypt a Base32 secret under ``password``.

    Args:
        secret:   Base32 secret.
        password: Passphrase protecting the sealed token.

    Returns:
        URL-safe base64 token, safe to store as text.
    """
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)
    header = bytes([FORMAT_VERSION])
    ciphertext = AESGCM(derive_key(password, salt)).encrypt(
        nonce, secret.encode("utf-8"), header
    )
    return base64.urlsafe_b64encode(header + salt + nonce + ciphertext).decode("ascii")


def open_secret(token: str, password: str) -> str:
    """
    Decrypt a token produced by :func:`seal_secret`.

    Raises:
        SealError: If the token is malformed, of an unknown version, or fails
            authentication (wrong password or tampered data).
    """
    try:
        blob = base64.urlsafe_b64decode(token.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise SealError("Sealed secret is not valid base64.") from exc

    if len(blob) < _HEADER_SIZE + TAG_SIZE:
        raise SealError("Sealed secret is truncated.")
    if blob[0] != FORMAT_VERSION:
        raise SealError(f"Unsupported sealed secret version {blob[0]}.")

    salt = blob[1 : 1 + SALT_SIZE]
    nonce = blob[1 + SALT_SIZE : _HEADER_SIZE]
    try:
        plaintext = AESGCM(derive_key(password, salt)).decrypt(
            nonce, blob[_HEADER_SIZE:], blob[:1]
        )
    except InvalidTag as exc:
        logger.warning("Sealed secret failed authentication")
        raise SealError("Wrong password or tampered sealed secret.") from exc
    return plaintext.decode("utf-8")
