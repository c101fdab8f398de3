"""Tests for the timetrack-totp command-line interface."""

import logging

import pytest
from click.testing import CliRunner

from main import RedactingFilter, cli

RFC_SECRET_B32 = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


# ── new / uri / parse ─────────────────────────────────────────────────────────

def test_new_prints_secret_and_uri(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["new", "alice@example.com"])
    assert result.exit_code == 0, result.output
    fields = dict(
        line.split(":", 1) for line in result.output.splitlines()
        if line.startswith(("secret:", "uri:"))
    )
    secret, uri = fields["secret"].strip(), fields["uri"].strip()
    assert len(secret) == 32
    assert f"secret={secret}" in uri
    assert uri.startswith("otpauth://totp/TimeTrack:alice%40example.com?")


def test_new_issuer_from_environment(runner: CliRunner) -> None:
    result = runner.invoke(
        cli, ["new", "bob", "--minimal"], env={"TIMETRACK_TOTP_ISSUER": "Acme"}
    )
    assert result.exit_code == 0, result.output
    assert "issuer=Acme" in result.output
    assert "period=" not in result.output


def test_uri_command(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["uri", "jbsw y3dp ehpk 3pxp", "bob"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == (
        "otpauth://totp/TimeTrack:bob?secret=JBSWY3DPEHPK3PXP"
        "&issuer=TimeTrack&algorithm=SHA1&digits=6&period=30"
    )


def test_uri_rejects_bad_secret(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["uri", "ABCD1234", "bob"])
    assert result.exit_code == 2
    assert "invalid base32" in result.output


def test_parse_command(runner: CliRunner) -> None:
    result = runner.invoke(
        cli, ["parse", "otpauth://totp/GitHub:john?secret=JBSWY3DPEHPK3PXP"]
    )
    assert result.exit_code == 0, result.output
    assert "issuer:    GitHub" in result.output
    assert "account:   john" in result.output


def test_parse_command_invalid(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["parse", "http://example.com"])
    assert result.exit_code == 2


# ── code / verify ─────────────────────────────────────────────────────────────

def test_code_command(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["code", RFC_SECRET_B32, "--at", "59"])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["287082", "expires in 1s"]


def test_code_command_pretty(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["code", RFC_SECRET_B32, "--at", "59", "--pretty"])
    assert result.output.splitlines()[0] == "287 082"


def test_verify_valid(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["verify", RFC_SECRET_B32, "254676", "--at", "150"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "valid"


@pytest.mark.parametrize("token", ["000000", "12345"])
def test_verify_invalid(runner: CliRunner, token: str) -> None:
    result = runner.invoke(cli, ["verify", RFC_SECRET_B32, token, "--at", "150"])
    assert result.exit_code == 1
    assert result.output.strip() == "invalid"


# ── seal / unseal ─────────────────────────────────────────────────────────────

def test_seal_unseal_roundtrip(runner: CliRunner) -> None:
    sealed = runner.invoke(cli, ["seal", RFC_SECRET_B32, "--password", "pw"])
    assert sealed.exit_code == 0, sealed.output
    token = sealed.output.strip()

    opened = runner.invoke(cli, ["unseal", token, "--password", "pw"])
    assert opened.exit_code == 0, opened.output
    assert opened.output.strip() == RFC_SECRET_B32


def test_unseal_wrong_password(runner: CliRunner) -> None:
    token = runner.invoke(cli, ["seal", RFC_SECRET_B32, "--password", "pw"]).output.strip()
    result = runner.invoke(cli, ["unseal", token, "--password", "nope"])
    assert result.exit_code == 1
    assert "Wrong password" in result.output


# ── Log redaction ─────────────────────────────────────────────────────────────

def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_redacting_filter_masks_secret_and_code() -> None:
    record = _record("secret %s code %s", RFC_SECRET_B32, "254676")
    assert RedactingFilter().filter(record)
    assert record.getMessage() == "secret [secret] code [code]"


def test_redacting_filter_keeps_identifiers() -> None:
    record = _record("Reusing stored TOTP secret for factor %s", "f-12")
    RedactingFilter().filter(record)
    assert record.getMessage() == "Reusing stored TOTP secret for factor f-12"


def test_redacting_filter_masks_lowercase_secret() -> None:
    record = _record("s=%s", RFC_SECRET_B32.lower())
    RedactingFilter().filter(record)
    assert record.getMessage() == "s=[secret]"


@pytest.mark.parametrize("msg", ["otp:%s", "otp.%s", "[%s]"])
def test_redacting_filter_masks_labelled_code(msg: str) -> None:
    record = _record(msg, "254676")
    RedactingFilter().filter(record)
    assert "254676" not in record.getMessage()
    assert "[code]" in record.getMessage()
