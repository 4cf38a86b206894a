"""Credential daemon — a local Unix-socket service caching the session.

Wire protocol: one JSON object per line in each direction.

=========================================  =============================================
Request                                    Reply
=========================================  =============================================
``{"command": "get"}``                     ``{"ok": true, "token": ..., "passphrase": ...}``
``{"command": "set", "token", "passphrase"}``  ``{"ok": true}``
``{"command": "status"}``                  ``{"ok": true, "pid": ..., "authenticated": ...}``
``{"command": "shutdown"}``                ``{"ok": true}``
anything else                              ``{"ok": false, "error": ...}``
=========================================  =============================================

``get`` is answered from an immutable in-memory snapshot without
locking.  ``set`` is serialised by a single writer lock and persisted
through :class:`~orgctl.infra.credential_store.FileCredentialStore`
before the snapshot is swapped.

This module is the only place that touches sockets; every socket or
decoding failure on the client side is re-raised as
:class:`~orgctl.exceptions.DaemonUnavailableError`.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import socketserver
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import Any

from orgctl.core.models import Credentials
from orgctl.exceptions import DaemonProtocolError, DaemonUnavailableError, OrgctlError
from orgctl.infra.credential_store import FileCredentialStore

logger = logging.getLogger(__name__)

_MAX_LINE = 64 * 1024


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

class _RequestHandler(socketserver.StreamRequestHandler):
    server: _UnixServer

    def handle(self) -> None:
        while True:
            line = self.rfile.readline(_MAX_LINE)
            if not line:
                return
            reply = self.server.daemon.dispatch(line)
            self.wfile.write(json.dumps(reply).encode("utf-8") + b"\n")
            self.wfile.flush()


class _UnixServer(socketserver.ThreadingUnixStreamServer):
    daemon_threads = True

    def __init__(self, socket_path: str, daemon: CredentialDaemon) -> None:
        self.daemon = daemon
        super().__init__(socket_path, _RequestHandler)


class CredentialDaemon:
    """Serves the credential contract over a Unix-domain socket.

    Parameters
    ----------
    store:
        Persistent backing store; read once at startup.
    socket_path:
        Filesystem path of the listening socket.
    """

    def __init__(self, store: FileCredentialStore, socket_path: Path) -> None:
        self._store = store
        self.socket_path = Path(socket_path)
        self._snapshot: Credentials = store.get()
        self._write_lock = threading.Lock()
        self._server: _UnixServer | None = None

    # ------------------------------------------------------------------
    # Credential contract
    # ------------------------------------------------------------------

    def get(self) -> Credentials:
        return self._snapshot

    def set(self, token: str, passphrase: str) -> None:
        with self._write_lock:
            self._store.set(token, passphrase)
            self._snapshot = Credentials(token=token, passphrase=passphrase)
        logger.info(
            "Credentials %s",
            "updated" if token else "cleared",
        )

    # ------------------------------------------------------------------
    # Request dispatch
    # ------------------------------------------------------------------

    def dispatch(self, raw: bytes) -> dict[str, Any]:
        """Decode one request line and return the reply object."""
        try:
            request = json.loads(raw)
        except ValueError:
            return {"ok": False, "error": "malformed request"}
        if not isinstance(request, dict):
            return {"ok": False, "error": "malformed request"}

        command = request.get("command")
        if command == "get":
            current = self.get()
            return {"ok": True, "token": current.token, "passphrase": current.passphrase}
        if command == "set":
            token = request.get("token")
            passphrase = request.get("passphrase")
            if not isinstance(token, str) or not isinstance(passphrase, str):
                return {"ok": False, "error": "token and passphrase must be strings"}
            try:
                self.set(token, passphrase)
            except OSError as exc:
                logger.error("Could not persist credentials: %s", exc)
                return {"ok": False, "error": f"could not persist credentials: {exc}"}
            return {"ok": True}
        if command == "status":
            return {
                "ok": True,
                "pid": os.getpid(),
                "authenticated": self.get().is_authenticated,
            }
        if command == "shutdown":
            # shutdown() blocks until serve_forever returns; never call it
            # from the serving thread itself.
            threading.Thread(target=self.shutdown, daemon=True).start()
            return {"ok": True}
        return {"ok": False, "error": f"unknown command: {command!r}"}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def bind(self) -> None:
        """Create the listening socket, removing a stale one if present.

        Raises
        ------
        OrgctlError
            If another daemon already answers on the socket.
        """
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        if self.socket_path.exists():
            if _socket_answers(self.socket_path):
                raise OrgctlError(
                    f"A daemon is already listening on {self.socket_path}",
                    hint="Stop it first with: orgctl daemon stop",
                )
            logger.info("Removing stale socket %s", self.socket_path)
            self.socket_path.unlink()

        self._server = _UnixServer(str(self.socket_path), self)
        os.chmod(self.socket_path, 0o600)
        logger.info("Credential daemon listening on %s (pid %d)", self.socket_path, os.getpid())

    def serve_forever(self) -> None:
        if self._server is None:
            self.bind()
        server = self._server
        try:
            server.serve_forever(poll_interval=0.2)
        finally:
            server.server_close()
            self.socket_path.unlink(missing_ok=True)
            logger.info("Credential daemon stopped")

    def shutdown(self) -> None:
        if self._server is not None:
            self._server.shutdown()


def _socket_answers(path: Path) -> bool:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(0.5)
        try:
            sock.connect(str(path))
        except OSError:
            return False
    return True


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class DaemonClient:
    """CLI-side handle on the credential daemon.

    Satisfies :class:`~orgctl.core.protocols.CredentialStore`
    structurally.  One connection per request.
    """

    def __init__(self, socket_path: Path, *, timeout: float = 5.0) -> None:
        self.socket_path = Path(socket_path)
        self._timeout = timeout

    def get(self) -> Credentials:
        reply = self._call({"command": "get"})
        return Credentials(
            token=str(reply.get("token") or ""),
            passphrase=str(reply.get("passphrase") or ""),
        )

    def set(self, token: str, passphrase: str) -> None:
        self._call({"command": "set", "token": token, "passphrase": passphrase})

    def logout(self) -> None:
        self.set("", "")

    def status(self) -> dict[str, Any]:
        return self._call({"command": "status"})

    def shutdown(self) -> None:
        self._call({"command": "shutdown"})

    def is_running(self) -> bool:
        try:
            self.status()
        except DaemonUnavailableError:
            return False
        return True

    def _call(self, request: dict[str, Any]) -> dict[str, Any]:
        payload = json.dumps(request).encode("utf-8") + b"\n"
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(self._timeout)
                sock.connect(str(self.socket_path))
                sock.sendall(payload)
                with sock.makefile("rb") as reader:
                    line = reader.readline(_MAX_LINE)
        except OSError as exc:
            raise DaemonUnavailableError(
                f"Credential daemon is not reachable at {self.socket_path}: {exc}",
            ) from exc

        if not line:
            raise DaemonProtocolError("Credential daemon closed the connection without replying")
        try:
            reply = json.loads(line)
        except ValueError as exc:
            raise DaemonProtocolError("Credential daemon sent a malformed reply") from exc
        if not isinstance(reply, dict) or not reply.get("ok"):
            error = reply.get("error") if isinstance(reply, dict) else None
            raise DaemonProtocolError(
                f"Credential daemon rejected {request['command']!r}: {error or 'unknown error'}",
                hint="Restart it with: orgctl daemon stop && orgctl daemon start",
            )
        return reply


# ---------------------------------------------------------------------------
# Detached process management
# ---------------------------------------------------------------------------

def spawn_daemon(log_path: Path, env: dict[str, str] | None = None) -> int:
    """Start ``orgctl daemon run`` detached, logging to *log_path*.

    Returns the pid of the new process.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_stream = open(log_path, "a")
    try:
        process = subprocess.Popen(
            [sys.executable, "-m", "orgctl", "daemon", "run"],
            stdin=subprocess.DEVNULL,
            stdout=log_stream,
            stderr=log_stream,
            start_new_session=True,  # Detach from parent
            env={**os.environ, **(env or {})},
        )
    finally:
        log_stream.close()
    return process.pid


def wait_for_daemon(client: DaemonClient, timeout: float = 5.0, interval: float = 0.1) -> dict[str, Any]:
    """Poll *client* until the daemon answers ``status``.

    Raises
    ------
    DaemonUnavailableError
        If the daemon does not answer within *timeout* seconds.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            return client.status()
        except DaemonUnavailableError:
            if time.monotonic() >= deadline:
                raise
            time.sleep(interval)
