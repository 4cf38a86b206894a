"""Infrastructure layer — external system integration.

This layer wraps all interaction with the control-plane HTTP API, the
credential daemon's Unix socket, and the credentials file.  Every raw
third-party exception must be caught here and re-raised as an
:class:`~orgctl.exceptions.OrgctlError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
"""

from orgctl.infra.api_client import ApiClient, ApiResponse, AuthorizedClient
from orgctl.infra.credential_store import FileCredentialStore
from orgctl.infra.daemon import CredentialDaemon, DaemonClient, spawn_daemon, wait_for_daemon

__all__: list[str] = [
    "ApiClient",
    "ApiResponse",
    "AuthorizedClient",
    "CredentialDaemon",
    "DaemonClient",
    "FileCredentialStore",
    "spawn_daemon",
    "wait_for_daemon",
]
