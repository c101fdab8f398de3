"""
TOTP (Time-based One-Time Password) implementation following RFC 6238.

Parameters are fixed to what authenticator apps assume by default:
HMAC-SHA1, 6 digits, 30 second period.  The current time is always passed
in by the caller so results are reproducible.
"""

import hmac
import logging
import re

from core.base32 import decode
from core.hotp import DIGITS, MAX_COUNTER, generate_hotp

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

ALGORITHM = "SHA1"
PERIOD = 30     # seconds per time step
WINDOW = 1      # accepted skew, in time steps, on either side

_TOKEN_RE = re.compile(r"[0-9]{%d}" % DIGITS)


def time_counter(timestamp: float) -> int:
    """Return the time-step counter for a Unix ``timestamp``."""
    return int(timestamp // PERIOD)


def remaining_seconds(timestamp: float) -> int:
    """Return seconds until the time step containing ``timestamp`` expires."""
    return PERIOD - int(timestamp % PERIOD)


def generate_totp(secret: str, timestamp: float) -> str:
    """
    Generate the TOTP code for ``secret`` at ``timestamp``.

    Args:
        secret:    Base32-encoded secret.
        timestamp: Unix time in seconds.

    Returns:
        6-digit OTP string.

    Raises:
        ValueError: If the secret decodes to no bytes.
    """
    return generate_hotp(decode(secret), time_counter(timestamp))


def validate_totp(
    secret: str,
    token: str,
    timestamp: float,
    window: int = WINDOW,
) -> bool:
    """
    Validate ``token`` against ``secret`` within ±``window`` time steps.

    The token must be exactly six ASCII digits; anything else is rejected
    before any HMAC is computed.  A secret that decodes to nothing yields
    ``False`` rather than an exception.

    Args:
        secret:    Base32-encoded secret.
        token:     Code typed by the user.
        timestamp: Unix time in seconds.
        window:    Allowed skew in steps (default 1, i.e. ±30 s).

    Returns:
        True if the token matches any step in the window.
    """
    if not isinstance(token, str) or not _TOKEN_RE.fullmatch(token):
        logger.debug("TOTP rejected: malformed token")
        return False

    secret_bytes = decode(secret)
    if not secret_bytes:
        logger.warning("TOTP rejected: secret decodes to no data")
        return False

    counter = time_counter(timestamp)
    if not 0 <= counter < MAX_COUNTER:
        logger.debug("TOTP rejected: timestamp outside counter range")
        return False

    for step in range(-window, window + 1):
        if not 0 <= counter + step < MAX_COUNTER:
            continue
        expected = generate_hotp(secret_bytes, counter + step)
        if hmac.compare_digest(token, expected):
            logger.debug("TOTP accepted (step offset %d)", step)
            return True

    logger.debug("TOTP rejected: no match in window")
    return False
