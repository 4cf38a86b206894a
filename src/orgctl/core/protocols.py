"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters and the CLI
must satisfy.  Core code depends ONLY on these protocols, never on
concrete implementations.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from orgctl.core.models import Credentials, ServiceInput, Session


class CredentialStore(Protocol):
    """Contract for the cross-invocation credential cache.

    The daemon client and the on-disk store both satisfy this protocol
    structurally (no explicit inheritance required).
    """

    def get(self) -> Credentials:
        """Return the cached credentials.

        An unauthenticated store returns empty strings; this is never
        an error.

        Raises
        ------
        DaemonUnavailableError
            When the store cannot be reached.
        """
        ...  # pragma: no cover

    def set(self, token: str, passphrase: str) -> None:
        """Persist *token* and *passphrase*, replacing any prior value.

        Raises
        ------
        DaemonUnavailableError
            When the store cannot be reached.
        """
        ...  # pragma: no cover


class ApiResponseLike(Protocol):
    """Anything exposing an ordered ``body`` of resource records."""

    body: Sequence[Mapping[str, Any]]


class SessionApi(Protocol):
    """Request helper bound to one :class:`Session`.

    Every request it issues carries that session's credential.
    """

    def get(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
    ) -> ApiResponseLike:
        ...  # pragma: no cover

    def post(
        self,
        path: str,
        json: Mapping[str, Any] | None = None,
    ) -> ApiResponseLike:
        ...  # pragma: no cover


class ApiClientLike(Protocol):
    """Contract for the control-plane API client."""

    def auth(self, session: Session) -> SessionApi:
        """Return a request helper bound to *session*."""
        ...  # pragma: no cover


class MissingFieldResolver(Protocol):
    """Capability that fills in provisioning input the user left out.

    The CLI injects an interactive implementation; headless callers
    inject nothing and get a :class:`~orgctl.exceptions.ValidationError`
    instead.
    """

    def resolve(
        self,
        missing: Sequence[str],
        current: ServiceInput,
    ) -> ServiceInput:
        """Return *current* with the fields named in *missing* filled in."""
        ...  # pragma: no cover
