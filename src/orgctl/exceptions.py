"""Custom exception hierarchy for orgctl.

All exceptions that cross layer boundaries must inherit from
:class:`OrgctlError`.  Raw third-party exceptions (httpx, socket, json)
must NEVER propagate beyond the infrastructure layer; they must be
caught and re-raised as a typed subclass defined here.

Hierarchy
---------
OrgctlError
├── ConfigurationError
├── DaemonUnavailableError
│   └── DaemonProtocolError
├── SessionMissingError
├── ApiError
├── ValidationError
├── OrganizationNotFoundError
├── AmbiguousOrganizationError
└── EnvironmentError
"""

from __future__ import annotations

from collections.abc import Sequence


class OrgctlError(Exception):
    """Base exception for all orgctl errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration ---------------------------------------------------------

class ConfigurationError(OrgctlError):
    """Raised when settings from the environment fail validation."""


# --- Credential daemon -----------------------------------------------------

class DaemonUnavailableError(OrgctlError):
    """Raised when the credential daemon's socket cannot be reached."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(
            message,
            hint=hint or "Start the daemon with: orgctl daemon start",
        )


class DaemonProtocolError(DaemonUnavailableError):
    """Raised when the daemon answers with a malformed or failed reply."""


# --- Session ---------------------------------------------------------------

class SessionMissingError(OrgctlError):
    """Raised when an authenticated operation runs without a session."""

    def __init__(
        self,
        message: str = "Session object missing on Context",
        *,
        hint: str | None = "Log in first with: orgctl login",
    ) -> None:
        super().__init__(message, hint=hint)


# --- Remote API ------------------------------------------------------------

class ApiError(OrgctlError):
    """Raised for a non-success response or a transport failure.

    Attributes
    ----------
    path:
        Collection path of the failing request (e.g. ``/projects``).
    status:
        HTTP status code, or ``None`` when the request never completed
        or the failing reply is not tied to one.
    reason:
        Server-reported (or transport) reason text.
    """

    def __init__(
        self,
        path: str,
        status: int | None,
        reason: str,
        *,
        transport: bool = False,
        hint: str | None = None,
    ) -> None:
        if transport:
            label = "transport error"
        elif status is not None:
            label = f"HTTP {status}"
        else:
            label = "bad response"
        super().__init__(f"{path}: {label}: {reason}", hint=hint)
        self.path: str = path
        self.status: int | None = status
        self.reason: str = reason


# --- Provisioning input ----------------------------------------------------

class ValidationError(OrgctlError):
    """Raised when required provisioning input is absent or malformed."""

    def __init__(
        self,
        message: str,
        *,
        fields: Sequence[str] = (),
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.fields: tuple[str, ...] = tuple(fields)


class OrganizationNotFoundError(OrgctlError):
    """Raised when no organization matches the requested name."""


class AmbiguousOrganizationError(OrgctlError):
    """Raised when more than one organization matches the requested name."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(OrgctlError):
    """Raised when an optional runtime dependency is not available."""
