"""
TimeTrack TOTP – command-line entry point.

Usage
-----
    python main.py new alice@example.com
    python main.py verify <SECRET> 123456

Or, if installed as a package:
    timetrack-totp --help
"""

import logging
import re
import sys
import time
from typing import Optional

import click

from core.base32 import DecodeError, decode_strict, normalize_secret
from core.crypto import SealError, open_secret, seal_secret
from core.totp import generate_totp, remaining_seconds, validate_totp
from core.utils import EntropyError, format_otp
from provisioning.uri import (
    ISSUER,
    build_provisioning_uri,
    new_provisioning_config,
    parse_provisioning_uri,
)

logger = logging.getLogger("timetrack_totp")


# ── Logging setup ─────────────────────────────────────────────────────────────

class RedactingFilter(logging.Filter):
    """Mask base32 secrets and 6-digit codes in log records."""

    _SECRET_RE = re.compile(r"\b[A-Z2-7]{16,}=*\b", re.IGNORECASE)
    _CODE_RE = re.compile(r"(?<!\d)\d{6}(?!\d)")

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        message = self._SECRET_RE.sub("[secret]", message)
        message = self._CODE_RE.sub("[code]", message)
        record.msg, record.args = message, None
        return True


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
    # Suppress sealing internals below WARNING
    logging.getLogger("core.crypto").setLevel(logging.WARNING)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _timestamp(at: Optional[int]) -> int:
    return int(time.time()) if at is None else at


def _checked_secret(secret: str) -> str:
    try:
        decode_strict(secret)
    except DecodeError as exc:
        raise click.BadParameter(str(exc), param_hint="SECRET") from exc
    return normalize_secret(secret)


_at_option = click.option(
    "--at", type=click.IntRange(min=0), default=None,
    help="Unix time in seconds (defaults to now).",
)
_issuer_option = click.option(
    "--issuer", default=ISSUER, show_default=True, envvar="TIMETRACK_TOTP_ISSUER",
    help="Issuer shown by the authenticator app.",
)
_minimal_option = click.option(
    "--minimal", is_flag=True,
    help="Omit algorithm/digits/period from the URI.",
)


# ── Commands ──────────────────────────────────────────────────────────────────

@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """TOTP secrets, codes and provisioning URIs for TimeTrack."""
    configure_logging(verbose)


@cli.command()
@click.argument("account")
@_issuer_option
@_minimal_option
def new(account: str, issuer: str, minimal: bool) -> None:
    """Generate a new secret and its provisioning URI for ACCOUNT."""
    try:
        config = new_provisioning_config(account, issuer=issuer)
    except EntropyError as exc:
        raise click.ClickException(str(exc)) from exc
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="ACCOUNT") from exc
    logger.info("Generated new TOTP secret")
    click.echo(f"secret: {config.secret}")
    click.echo(f"uri:    {build_provisioning_uri(config.secret, config.issuer, config.account, minimal)}")


@cli.command()
@click.argument("secret")
@_at_option
@click.option("--pretty", is_flag=True, help="Group digits for readability.")
def code(secret: str, at: Optional[int], pretty: bool) -> None:
    """Print the current code for SECRET."""
    secret = _checked_secret(secret)
    ts = _timestamp(at)
    otp = generate_totp(secret, ts)
    click.echo(format_otp(otp) if pretty else otp)
    click.echo(f"expires in {remaining_seconds(ts)}s")


@cli.command()
@click.argument("secret")
@click.argument("token", metavar="CODE")
@_at_option
def verify(secret: str, token: str, at: Optional[int]) -> None:
    """Check CODE against SECRET; exits 1 when invalid."""
    secret = _checked_secret(secret)
    ok = validate_totp(secret, token, _timestamp(at))
    logger.info("Verification %s", "succeeded" if ok else "failed")
    click.echo("valid" if ok else "invalid")
    if not ok:
        sys.exit(1)


@cli.command()
@click.argument("secret")
@click.argument("account")
@_issuer_option
@_minimal_option
def uri(secret: str, account: str, issuer: str, minimal: bool) -> None:
    """Print the provisioning URI for an existing SECRET."""
    click.echo(build_provisioning_uri(_checked_secret(secret), issuer, account, minimal))


@cli.command()
@click.argument("value", metavar="URI")
def parse(value: str) -> None:
    """Show the parameters encoded in an otpauth:// URI."""
    try:
        config = parse_provisioning_uri(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="URI") from exc
    click.echo(f"issuer:    {config.issuer}")
    click.echo(f"account:   {config.account}")
    click.echo(f"secret:    {config.secret}")
    click.echo(f"algorithm: {config.algorithm}")
    click.echo(f"digits:    {config.digits}")
    click.echo(f"period:    {config.period}")


@cli.command()
@click.argument("secret")
@click.password_option(help="Passphrase protecting the sealed secret.")
def seal(secret: str, password: str) -> None:
    """Encrypt SECRET for storage."""
    click.echo(seal_secret(_checked_secret(secret), password))


@cli.command()
@click.argument("token")
@click.option("--password", prompt=True, hide_input=True,
              help="Passphrase used when sealing.")
def unseal(token: str, password: str) -> None:
    """Decrypt a sealed TOKEN and print the secret."""
    try:
        click.echo(open_secret(token, password))
    except SealError as exc:
        raise click.ClickException(str(exc)) from exc


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
