"""End-to-end tests for the CLI commands (cli/app.py).

The credential daemon is replaced by a mock client and HTTP goes
through ``httpx.MockTransport``; nothing leaves the process.
"""

from __future__ import annotations

import io
import json
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from orgctl.cli import app as app_module
from orgctl.cli import exit_codes
from orgctl.cli.app import main
from orgctl.core.models import Credentials
from orgctl.exceptions import (
    ApiError,
    OrganizationNotFoundError,
    OrgctlError,
    SessionMissingError,
    ValidationError,
)
from orgctl.infra import api_client as api_client_module


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def daemon(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    client = MagicMock()
    client.get.return_value = Credentials(token="this is a token", passphrase="a passphrase")
    monkeypatch.setattr(app_module, "_daemon_client", lambda settings: client)
    return client


@pytest.fixture
def api(monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
    """Route every ApiClient through a scripted MockTransport."""
    seen: list[httpx.Request] = []
    routes: dict[tuple[str, str], httpx.Response] = {
        ("GET", "/v1/orgs"): httpx.Response(
            200, json={"body": [{"id": "org1", "body": {"name": "my-org"}}]},
        ),
        ("POST", "/v1/projects"): httpx.Response(
            201, json={"body": [{"id": "project1", "body": {"name": "api-1", "org_id": "org1"}}]},
        ),
        ("POST", "/v1/services"): httpx.Response(
            201, json={"body": [{
                "id": "service1",
                "body": {"name": "api-1", "project_id": "project1", "org_id": "org1"},
            }]},
        ),
    }

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v1/orgs" and request.url.params.get("name") != "my-org":
            return httpx.Response(200, json={"body": []})
        return routes[(request.method, request.url.path)]

    original = api_client_module.ApiClient

    def factory(base_url: str, **kwargs: Any) -> Any:
        kwargs["transport"] = httpx.MockTransport(handler)
        return original(base_url, **kwargs)

    monkeypatch.setattr(api_client_module, "ApiClient", factory)
    monkeypatch.setenv("ORGCTL_API_URL", "https://api.test/v1")
    return seen


# ---------------------------------------------------------------------------
# services create
# ---------------------------------------------------------------------------

class TestServicesCreate:
    def test_creates_project_then_service(
        self,
        daemon: MagicMock,
        api: list[httpx.Request],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = main(["services", "create", "api-1", "--org", "my-org", "--no-input"])

        assert code == exit_codes.SUCCESS
        assert [(r.method, r.url.path) for r in api] == [
            ("GET", "/v1/orgs"),
            ("POST", "/v1/projects"),
            ("POST", "/v1/services"),
        ]
        assert json.loads(api[2].content) == {
            "body": {"name": "api-1", "projectId": "project1", "organizationId": "org1"},
        }
        assert "Service created." in capsys.readouterr().err

    def test_org_from_environment(
        self,
        daemon: MagicMock,
        api: list[httpx.Request],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("ORGCTL_ORG", "my-org")
        assert main(["services", "create", "api-1", "--no-input"]) == exit_codes.SUCCESS
        assert api[0].url.params["name"] == "my-org"

    def test_flag_overrides_environment(
        self,
        daemon: MagicMock,
        api: list[httpx.Request],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("ORGCTL_ORG", "other-org")
        with pytest.raises(OrganizationNotFoundError):
            main(["services", "create", "api-1", "--org", "missing-org", "--no-input"])
        assert api[0].url.params["name"] == "missing-org"

    def test_not_logged_in_makes_no_http_calls(
        self,
        daemon: MagicMock,
        api: list[httpx.Request],
    ) -> None:
        daemon.get.return_value = Credentials()
        with pytest.raises(SessionMissingError):
            main(["services", "create", "api-1", "--org", "my-org", "--no-input"])
        assert api == []

    def test_no_input_with_missing_name(
        self,
        daemon: MagicMock,
        api: list[httpx.Request],
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            main(["services", "create", "--org", "my-org", "--no-input"])
        assert exc_info.value.fields == ("name",)
        assert api == []

    def test_prompts_for_missing_values(
        self,
        daemon: MagicMock,
        api: list[httpx.Request],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        questionary = MagicMock()
        questionary.text.return_value.ask.side_effect = ["api-1", "my-org"]
        monkeypatch.setattr(
            "orgctl.cli.field_prompt._import_questionary", lambda: questionary,
        )
        assert main(["services", "create"]) == exit_codes.SUCCESS
        assert questionary.text.call_count == 2
        assert json.loads(api[1].content)["body"]["name"] == "api-1"

    def test_server_error_surfaces_as_api_error(
        self,
        daemon: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        original = api_client_module.ApiClient

        def factory(base_url: str, **kwargs: Any) -> Any:
            kwargs["transport"] = httpx.MockTransport(
                lambda request: httpx.Response(500, json={"error": "boom"}),
            )
            return original(base_url, **kwargs)

        monkeypatch.setattr(api_client_module, "ApiClient", factory)
        with pytest.raises(ApiError, match="HTTP 500: boom"):
            main(["services", "create", "api-1", "--org", "my-org", "--no-input"])


# ---------------------------------------------------------------------------
# login / logout
# ---------------------------------------------------------------------------

class TestLogin:
    def test_token_from_stdin(
        self,
        daemon: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("secret-token\n"))
        assert main(["login", "--token-stdin"]) == exit_codes.SUCCESS
        daemon.set.assert_called_once_with("secret-token", "")

    def test_empty_stdin_rejected(
        self,
        daemon: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with pytest.raises(ValidationError, match="No token"):
            main(["login", "--token-stdin"])
        daemon.set.assert_not_called()

    def test_interactive(
        self,
        daemon: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(
            "orgctl.cli.field_prompt.prompt_credentials", lambda: ("tok", "pass"),
        )
        assert main(["login"]) == exit_codes.SUCCESS
        daemon.set.assert_called_once_with("tok", "pass")

    def test_logout(self, daemon: MagicMock) -> None:
        assert main(["logout"]) == exit_codes.SUCCESS
        daemon.logout.assert_called_once_with()


# ---------------------------------------------------------------------------
# daemon actions
# ---------------------------------------------------------------------------

class TestDaemonCommands:
    def test_start_spawns_and_waits(
        self,
        daemon: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        daemon.is_running.return_value = False
        spawned: list[object] = []
        monkeypatch.setattr(
            "orgctl.infra.daemon.spawn_daemon", lambda log_path: spawned.append(log_path) or 99,
        )
        monkeypatch.setattr(
            "orgctl.infra.daemon.wait_for_daemon",
            lambda client, timeout: {"ok": True, "pid": 99},
        )
        assert main(["daemon", "start"]) == exit_codes.SUCCESS
        assert len(spawned) == 1

    def test_start_when_running(self, daemon: MagicMock) -> None:
        daemon.is_running.return_value = True
        with pytest.raises(OrgctlError, match="already running"):
            main(["daemon", "start"])

    def test_stop(self, daemon: MagicMock) -> None:
        daemon.is_running.return_value = True
        assert main(["daemon", "stop"]) == exit_codes.SUCCESS
        daemon.shutdown.assert_called_once_with()

    def test_stop_when_not_running(
        self,
        daemon: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        daemon.is_running.return_value = False
        assert main(["daemon", "stop"]) == exit_codes.SUCCESS
        daemon.shutdown.assert_not_called()
        assert "not running" in capsys.readouterr().err

    def test_status(
        self,
        daemon: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        daemon.status.return_value = {"ok": True, "pid": 7, "authenticated": True}
        assert main(["daemon", "status"]) == exit_codes.SUCCESS
        assert "logged in" in capsys.readouterr().err
