"""``orgctl doctor`` — environment diagnostics command.

Gathers runtime information and renders a Rich table summarising
whether the environment can run orgctl: interpreter, HTTP stack, API
endpoint configuration, and the credential daemon.

This module lives in the CLI layer; it may import from ``infra``
and ``config``, and it renders via Rich.  No business logic resides
here; it purely collects and displays diagnostic data.
"""

from __future__ import annotations

import platform
import sys
from urllib.parse import urlparse

from orgctl.cli import exit_codes
from orgctl.cli.console import console
from orgctl.config import Settings
from orgctl.exceptions import DaemonUnavailableError
from orgctl.infra.daemon import DaemonClient
from orgctl.version import __version__


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    major, minor = sys.version_info[:2]
    ok = major >= 3 and minor >= 10
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _httpx_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the httpx row."""
    try:
        import httpx
    except ImportError:
        return "httpx", "NOT INSTALLED", "[red]FAIL[/red]"
    return "httpx", getattr(httpx, "__version__", "unknown"), "[green]OK[/green]"


def _api_url_check(settings: Settings) -> tuple[str, str, str]:
    """Return (label, value, status) for the API endpoint row."""
    parsed = urlparse(settings.api_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "API URL", settings.api_url, "[red]FAIL (not an http(s) URL)[/red]"
    if parsed.scheme == "http":
        return "API URL", settings.api_url, "[yellow]WARN (plain http)[/yellow]"
    return "API URL", settings.api_url, "[green]OK[/green]"


def _daemon_check(client: DaemonClient) -> tuple[str, str, str]:
    """Return (label, value, status) for the credential daemon row."""
    try:
        status = client.status()
    except DaemonUnavailableError:
        return "Daemon", "not running", "[yellow]WARN[/yellow]"
    return "Daemon", f"pid {status.get('pid', '?')}", "[green]OK[/green]"


def _session_check(client: DaemonClient) -> tuple[str, str, str]:
    """Return (label, value, status) for the cached session row."""
    try:
        credentials = client.get()
    except DaemonUnavailableError:
        return "Session", "unknown", "[yellow]WARN[/yellow]"
    if credentials.is_authenticated:
        return "Session", "logged in", "[green]OK[/green]"
    return "Session", "logged out", "[yellow]WARN[/yellow]"


def _orgctl_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the orgctl version row."""
    return "orgctl", __version__, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    if "FAIL" in status:
        return "FAIL"
    if "WARN" in status:
        return "WARN"
    if "OK" in status:
        return "OK"
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\norgctl doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<40} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<12} {value:<40} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(settings: Settings, client: DaemonClient | None = None) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check fails (warnings are
        allowed), :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    if client is None:
        client = DaemonClient(settings.socket_path, timeout=settings.daemon_timeout_seconds)

    checks = [
        _orgctl_version_check(),
        _python_version_check(),
        _httpx_version_check(),
        _api_url_check(settings),
        _daemon_check(client),
        _session_check(client),
    ]
    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
        return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS

    table = Table(
        title="orgctl doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
