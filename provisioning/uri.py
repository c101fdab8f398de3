"""
Build and parse otpauth:// provisioning URIs (Google Authenticator Key URI
Format) for the fixed TOTP parameters used by TimeTrack.

Reference: https://github.com/google/google-authenticator/wiki/Key-Uri-Format
"""

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Optional

from core.base32 import DecodeError, decode_strict, normalize_secret
from core.hotp import DIGITS
from core.totp import ALGORITHM, PERIOD
from core.utils import generate_secret, sanitise_label

logger = logging.getLogger(__name__)

ISSUER = "TimeTrack"


class ReenrollmentRequired(Exception):
    """The stored secret is unusable; the user must enroll a fresh one."""


@dataclass(frozen=True)
class ProvisioningConfig:
    """Everything an authenticator app needs to add a TOTP account."""

    secret: str         # base32, unpadded
    issuer: str
    account: str
    algorithm: str = ALGORITHM
    digits: int = DIGITS
    period: int = PERIOD

    @property
    def uri(self) -> str:
        return build_provisioning_uri(self.secret, self.issuer, self.account)


def _quote(component: str) -> str:
    return urllib.parse.quote(component, safe="")


def build_provisioning_uri(
    secret: str,
    issuer: str,
    account: str,
    minimal: bool = False,
) -> str:
    """
    Build an ``otpauth://totp/`` URI.

    ``issuer`` and ``account`` are percent-encoded as URI components so that
    characters such as ``:`` or ``/`` in display names cannot corrupt the
    label.  The secret is emitted as given.

    Args:
        secret:  Base32 secret.
        issuer:  Issuer shown by the authenticator app (may be empty).
        account: Account name, usually the user's email.
        minimal: Omit ``algorithm``, ``digits`` and ``period`` and rely on the
                 RFC 6238 defaults, which match the engine's parameters.

    Returns:
        Provisioning URI string.
    """
    label = f"{_quote(issuer)}:{_quote(account)}" if issuer else _quote(account)
    params = [("secret", secret)]
    if issuer:
        params.append(("issuer", _quote(issuer)))
    if not minimal:
        params += [
            ("algorithm", ALGORITHM),
            ("digits", str(DIGITS)),
            ("period", str(PERIOD)),
        ]
    query = "&".join(f"{key}={value}" for key, value in params)
    return f"otpauth://totp/{label}?{query}"


def _split_label(raw_path: str) -> tuple[str, str]:
    """Return ``(issuer, account)`` from the undecoded URI path."""
    raw_label = raw_path.lstrip("/")
    # A literal ':' separates components whose own ':' are escaped; some
    # issuers escape the separator too, so fall back to the decoded label.
    if ":" in raw_label:
        issuer, account = raw_label.split(":", 1)
        return urllib.parse.unquote(issuer), urllib.parse.unquote(account)
    label = urllib.parse.unquote(raw_label)
    if ":" in label:
        issuer, account = label.split(":", 1)
        return issuer, account
    return "", label


def parse_provisioning_uri(uri: str) -> ProvisioningConfig:
    """
    Parse and validate an ``otpauth://totp/`` URI.

    Explicit ``algorithm``, ``digits`` and ``period`` parameters are accepted
    only when they match the engine's fixed values.

    Raises:
        ValueError: If the URI is malformed or uses unsupported parameters.
    """
    parsed = urllib.parse.urlparse(uri.strip())

    if parsed.scheme.lower() != "otpauth":
        raise ValueError(f"Expected 'otpauth' scheme, got '{parsed.scheme}'.")
    if parsed.netloc.lower() != "totp":
        raise ValueError(f"Unsupported OTP type '{parsed.netloc}'. Expected totp.")

    label_issuer, account = _split_label(parsed.path)
    account = sanitise_label(account)
    if not account:
        raise ValueError("Missing account name in otpauth URI label.")

    params = dict(urllib.parse.parse_qsl(parsed.query))

    raw_secret = params.get("secret", "")
    if not raw_secret:
        raise ValueError("Missing 'secret' parameter in otpauth URI.")
    decode_strict(raw_secret)
    secret = normalize_secret(raw_secret)

    # Issuer: prefer the query param; fall back to label prefix
    issuer = sanitise_label(params.get("issuer", label_issuer))

    algorithm = params.get("algorithm", ALGORITHM).upper()
    if algorithm != ALGORITHM:
        raise ValueError(f"Unsupported algorithm '{algorithm}'. Only {ALGORITHM} is supported.")

    for name, expected in (("digits", DIGITS), ("period", PERIOD)):
        raw = params.get(name)
        if raw is None:
            continue
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"'{name}' must be an integer.")
        if value != expected:
            raise ValueError(f"Unsupported {name} {value}; expected {expected}.")

    return ProvisioningConfig(secret=secret, issuer=issuer, account=account)


# ── Enrollment helpers ───────────────────────────────────────────────────────

def new_provisioning_config(account: str, issuer: str = ISSUER) -> ProvisioningConfig:
    """Create a config around a freshly generated secret."""
    account = sanitise_label(account)
    if not account:
        raise ValueError("Account name must not be empty.")
    return ProvisioningConfig(
        secret=generate_secret(),
        issuer=sanitise_label(issuer),
        account=account,
    )


def config_for_existing_secret(
    secret: Optional[str],
    account: str,
    issuer: str = ISSUER,
    factor_id: Optional[str] = None,
) -> ProvisioningConfig:
    """
    Rebuild the config for a secret retrieved from the authoritative store.

    A secret is never derived from identifiers such as the factor id or the
    email address.  When no usable secret is available the caller has to run
    enrollment again with :func:`new_provisioning_config`.

    Raises:
        ReenrollmentRequired: If ``secret`` is missing or not valid Base32.
    """
    if not secret:
        logger.info("No stored TOTP secret for factor %s; re-enrollment required", factor_id)
        raise ReenrollmentRequired("No stored secret for this factor.")
    try:
        decode_strict(secret)
    except DecodeError as exc:
        logger.warning("Stored TOTP secret for factor %s is invalid", factor_id)
        raise ReenrollmentRequired("Stored secret is not valid base32.") from exc

    logger.info("Reusing stored TOTP secret for factor %s", factor_id)
    return ProvisioningConfig(
        secret=normalize_secret(secret),
        issuer=sanitise_label(issuer),
        account=sanitise_label(account),
    )
