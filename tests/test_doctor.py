"""Tests for ``orgctl doctor`` (cli/doctor.py)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from orgctl.cli import exit_codes
from orgctl.cli.doctor import (
    _api_url_check,
    _daemon_check,
    _python_version_check,
    _session_check,
    _status_plain,
    run_doctor,
)
from orgctl.config import Settings, load_settings
from orgctl.core.models import Credentials
from orgctl.exceptions import DaemonUnavailableError


def _daemon(*, running: bool = True, authenticated: bool = True) -> MagicMock:
    client = MagicMock()
    if running:
        client.status.return_value = {"ok": True, "pid": 321, "authenticated": authenticated}
        client.get.return_value = Credentials(token="t" if authenticated else "", passphrase="")
    else:
        client.status.side_effect = DaemonUnavailableError("down")
        client.get.side_effect = DaemonUnavailableError("down")
    return client


class TestChecks:
    def test_python_ok(self) -> None:
        label, _, status = _python_version_check()
        assert label == "Python"
        assert "OK" in status

    def test_https_url_ok(self, settings: Settings) -> None:
        assert "OK" in _api_url_check(settings)[2]

    def test_plain_http_warns(self) -> None:
        settings = load_settings(api_url="http://localhost:8080")
        assert "WARN" in _api_url_check(settings)[2]

    def test_non_http_url_fails(self) -> None:
        settings = load_settings(api_url="ftp://example.com/api")
        assert "FAIL" in _api_url_check(settings)[2]

    def test_daemon_running(self) -> None:
        label, value, status = _daemon_check(_daemon())
        assert (label, value) == ("Daemon", "pid 321")
        assert "OK" in status

    def test_daemon_not_running_warns(self) -> None:
        assert "WARN" in _daemon_check(_daemon(running=False))[2]

    def test_session_logged_in(self) -> None:
        assert _session_check(_daemon())[1] == "logged in"

    def test_session_logged_out_warns(self) -> None:
        _, value, status = _session_check(_daemon(authenticated=False))
        assert value == "logged out"
        assert "WARN" in status

    @pytest.mark.parametrize(
        ("markup", "plain"),
        [
            ("[green]OK[/green]", "OK"),
            ("[yellow]WARN (plain http)[/yellow]", "WARN"),
            ("[red]FAIL[/red]", "FAIL"),
        ],
    )
    def test_status_plain(self, markup: str, plain: str) -> None:
        assert _status_plain(markup) == plain


class TestRunDoctor:
    def test_all_ok(self, settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_doctor(settings, _daemon()) == exit_codes.SUCCESS
        assert "All checks passed." in capsys.readouterr().err

    def test_warnings_still_succeed(self, settings: Settings) -> None:
        assert run_doctor(settings, _daemon(running=False)) == exit_codes.SUCCESS

    def test_failure_returns_general_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        settings = load_settings(api_url="ftp://example.com/api")
        assert run_doctor(settings, _daemon()) == exit_codes.GENERAL_ERROR
        assert "Some checks failed." in capsys.readouterr().err
