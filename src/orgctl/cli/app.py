"""CLI application entry point and command routing for orgctl.

This module is the **sole error boundary** for the entire application.
It catches :class:`~orgctl.exceptions.OrgctlError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here; all work is delegated to the core/service
  and infrastructure layers.
* ``print()`` is forbidden outside the CLI layer; Rich console is used
  exclusively.
* This module builds the per-invocation :class:`~orgctl.core.models.Context`
  and resolves the session before any command logic runs.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import TYPE_CHECKING

from orgctl.cli import exit_codes
from orgctl.cli.console import configure_logging, console
from orgctl.config import Settings, load_settings
from orgctl.exceptions import OrgctlError, ValidationError
from orgctl.version import __version__

if TYPE_CHECKING:
    from orgctl.infra.daemon import DaemonClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Commands:
    * ``orgctl services create [NAME] [--org ORG]``
    * ``orgctl login`` / ``orgctl logout``
    * ``orgctl daemon {start,stop,status,run}``
    * ``orgctl doctor``
    """
    parser = argparse.ArgumentParser(
        prog="orgctl",
        description="Manage organizations, projects and services.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    services = commands.add_parser("services", help="Manage services.")
    services_commands = services.add_subparsers(dest="services_command", metavar="ACTION")
    create = services_commands.add_parser(
        "create",
        help="Create a project and a service in an organization.",
    )
    create.add_argument("name", nargs="?", default=None, help="Service name.")
    create.add_argument(
        "-o",
        "--org",
        default=None,
        metavar="ORG",
        help="Use this organization (default: $ORGCTL_ORG).",
    )
    create.add_argument(
        "--no-input",
        action="store_true",
        help="Fail instead of prompting for missing values.",
    )

    login = commands.add_parser("login", help="Cache credentials in the daemon.")
    login.add_argument(
        "--token-stdin",
        action="store_true",
        help="Read the token from standard input; passphrase is left empty.",
    )
    commands.add_parser("logout", help="Clear cached credentials.")

    daemon = commands.add_parser("daemon", help="Control the credential daemon.")
    daemon_commands = daemon.add_subparsers(dest="daemon_command", metavar="ACTION")
    daemon_commands.add_parser("start", help="Start the daemon in the background.")
    daemon_commands.add_parser("stop", help="Stop a running daemon.")
    daemon_commands.add_parser("status", help="Show daemon status.")
    daemon_commands.add_parser("run", help="Run the daemon in the foreground.")

    commands.add_parser("doctor", help="Run environment diagnostics.")
    return parser


# ---------------------------------------------------------------------------
# Shared wiring
# ---------------------------------------------------------------------------

def _daemon_client(settings: Settings) -> DaemonClient:
    from orgctl.infra.daemon import DaemonClient

    return DaemonClient(settings.socket_path, timeout=settings.daemon_timeout_seconds)


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_services_create(settings: Settings, args: argparse.Namespace) -> int:
    """Provision a project and service.

    Flow:
    1. Build the invocation context from arguments and settings.
    2. Resolve the session from the credential daemon.
    3. Run the provisioning pipeline (prompting for missing input).
    4. Report the created service.
    """
    from orgctl.cli.field_prompt import QuestionaryFieldResolver
    from orgctl.core.models import Context
    from orgctl.core.provisioner import ServiceProvisioner
    from orgctl.core.session import resolve_session
    from orgctl.infra.api_client import ApiClient

    context = Context(
        settings=settings,
        daemon=_daemon_client(settings),
        parameters=[args.name] if args.name else [],
        options={"org": args.org or settings.org},
    )
    resolve_session(context)

    resolver = None if args.no_input else QuestionaryFieldResolver()
    with ApiClient(settings.api_url, timeout=settings.http_timeout_seconds) as client:
        service = ServiceProvisioner(client, resolver).execute(context)

    console.print(
        f"[bold green]Service created.[/bold green]  "
        f"{service.name} (id {service.id}, project {service.project_id}, "
        f"org {service.organization_id})"
    )
    return exit_codes.SUCCESS


def _handle_login(settings: Settings, args: argparse.Namespace) -> int:
    """Store a token and passphrase in the credential daemon."""
    if args.token_stdin:
        token = sys.stdin.readline().strip()
        passphrase = ""
        if not token:
            raise ValidationError("No token given on standard input.", fields=("token",))
    else:
        from orgctl.cli.field_prompt import prompt_credentials

        token, passphrase = prompt_credentials()

    _daemon_client(settings).set(token, passphrase)
    console.print("[bold green]Logged in.[/bold green]")
    return exit_codes.SUCCESS


def _handle_logout(settings: Settings) -> int:
    """Clear cached credentials."""
    _daemon_client(settings).logout()
    console.print("Logged out.")
    return exit_codes.SUCCESS


def _run_daemon_foreground(settings: Settings) -> int:
    """Serve the credential daemon until stopped or signalled."""
    from orgctl.infra.credential_store import FileCredentialStore
    from orgctl.infra.daemon import CredentialDaemon

    daemon = CredentialDaemon(
        FileCredentialStore(settings.credentials_file),
        settings.socket_path,
    )
    daemon.bind()

    def _on_signal(signum: int, _frame: object) -> None:
        logger.info("Received signal %d, shutting down", signum)
        threading.Thread(target=daemon.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _on_signal)
    daemon.serve_forever()
    return exit_codes.SUCCESS


def _handle_daemon(settings: Settings, args: argparse.Namespace) -> int:
    """Dispatch ``orgctl daemon <action>``."""
    from orgctl.infra.daemon import spawn_daemon, wait_for_daemon

    action = args.daemon_command
    if action == "run":
        logging.getLogger("orgctl").setLevel(logging.DEBUG if args.verbose else logging.INFO)
        return _run_daemon_foreground(settings)

    client = _daemon_client(settings)
    if action == "start":
        if client.is_running():
            raise OrgctlError(
                f"Daemon is already running on {settings.socket_path}",
            )
        spawn_daemon(settings.daemon_log_file)
        status = wait_for_daemon(client, timeout=settings.daemon_timeout_seconds)
        console.print(f"[bold green]Daemon started.[/bold green]  pid {status.get('pid')}")
        return exit_codes.SUCCESS

    if action == "stop":
        if not client.is_running():
            console.print("Daemon is not running.")
            return exit_codes.SUCCESS
        client.shutdown()
        console.print("Daemon stopped.")
        return exit_codes.SUCCESS

    if action == "status":
        status = client.status()
        state = "logged in" if status.get("authenticated") else "logged out"
        console.print(
            f"Daemon running  pid {status.get('pid')}  {state}  socket {settings.socket_path}"
        )
        return exit_codes.SUCCESS

    raise OrgctlError(
        "Missing daemon action.",
        hint="Use one of: start, stop, status, run",
    )


def _handle_doctor(settings: Settings) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from orgctl.cli.doctor import run_doctor

    return run_doctor(settings)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the orgctl CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    configure_logging(args.verbose, rich=args.command != "daemon")
    settings = load_settings()

    if args.command == "services":
        if args.services_command != "create":
            raise OrgctlError("Missing services action.", hint="Use: orgctl services create")
        return _handle_services_create(settings, args)
    if args.command == "login":
        return _handle_login(settings, args)
    if args.command == "logout":
        return _handle_logout(settings)
    if args.command == "daemon":
        return _handle_daemon(settings, args)
    return _handle_doctor(settings)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except OrgctlError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
