"""Tests for the maintenance CLI."""

from __future__ import annotations

from unittest.mock import patch

from typer.testing import CliRunner

from account_core import cli
from account_core.services.errors import PersistenceFailureError
from account_core.services.results import Failure, Success

runner = CliRunner()


class _DummySession:
    closed = False

    def close(self):
        self.closed = True


def test_sweep_verification_tokens_reports_count():
    session = _DummySession()

    with patch.object(cli, "SessionLocal", return_value=session), \
         patch.object(cli.AuthService, "expire_stale_verification_tokens", return_value=Success(3)):
        result = runner.invoke(cli.app, ["sweep-verification-tokens"])

    assert result.exit_code == 0
    assert "Expired 3 verification token(s)." in result.output
    assert session.closed


def test_sweep_verification_tokens_failure_exits_non_zero():
    failure = Failure(PersistenceFailureError("expire_stale_verification_tokens could not be persisted."))

    with patch.object(cli, "SessionLocal", return_value=_DummySession()), \
         patch.object(cli.AuthService, "expire_stale_verification_tokens", return_value=failure):
        result = runner.invoke(cli.app, ["sweep-verification-tokens"])

    assert result.exit_code == 1
    assert "could not be persisted" in result.output


def test_migrate_runs_migrations():
    with patch.object(cli, "run_migrations") as mock_run:
        result = runner.invoke(cli.app, ["migrate"])

    assert result.exit_code == 0
    mock_run.assert_called_once()
