"""Domain models for orgctl.

Resource records and credential bundles are **frozen** dataclasses;
immutable value objects with no behaviour beyond data access and
parsing from API records.  :class:`Context` is the one mutable object:
per-invocation state that is filled in exactly once by the CLI layer.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from orgctl.exceptions import ApiError

if TYPE_CHECKING:
    from orgctl.config import Settings
    from orgctl.core.protocols import CredentialStore


# ---------------------------------------------------------------------------
# Record parsing helpers
# ---------------------------------------------------------------------------

def _record_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a record that may wrap its attributes in a ``body`` envelope."""
    fields: dict[str, Any] = {}
    body = record.get("body")
    if isinstance(body, Mapping):
        fields.update(body)
    fields.update({k: v for k, v in record.items() if k != "body"})
    return fields


def _pick(fields: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = fields.get(key)
        if value is not None:
            return str(value)
    return ""


def _require_id(fields: Mapping[str, Any], path: str) -> str:
    # Identifiers come from the API only; a record without one is a bad reply.
    value = fields.get("id")
    if value is None or value == "":
        raise ApiError(path, None, "response record has no id")
    return str(value)


# ---------------------------------------------------------------------------
# Resource hierarchy
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Organization:
    """Top of the hierarchy.  Looked up by name, never created here."""

    id: str
    name: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Organization:
        fields = _record_fields(record)
        return cls(id=_require_id(fields, "/orgs"), name=_pick(fields, "name"))


@dataclass(frozen=True, slots=True)
class Project:
    """A project owned by exactly one :class:`Organization`."""

    id: str
    name: str
    organization_id: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Project:
        fields = _record_fields(record)
        return cls(
            id=_require_id(fields, "/projects"),
            name=_pick(fields, "name"),
            organization_id=_pick(fields, "organizationId", "org_id"),
        )


@dataclass(frozen=True, slots=True)
class Service:
    """A service owned by one :class:`Project`.

    ``organization_id`` is denormalised from the owning project so the
    service can be looked up by organization directly.
    """

    id: str
    name: str
    project_id: str
    organization_id: str

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Service:
        fields = _record_fields(record)
        return cls(
            id=_require_id(fields, "/services"),
            name=_pick(fields, "name"),
            project_id=_pick(fields, "projectId", "project_id"),
            organization_id=_pick(fields, "organizationId", "org_id"),
        )


# ---------------------------------------------------------------------------
# Credentials and session
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Credentials:
    """What the credential daemon caches.  Empty strings mean logged out."""

    token: str = ""
    passphrase: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def __repr__(self) -> str:
        return f"Credentials(authenticated={self.is_authenticated})"


@dataclass(frozen=True, slots=True)
class Session:
    """Credential bundle authorising API calls for one invocation.

    Never persisted by this layer; the daemon owns persistence.
    """

    token: str
    passphrase: str

    def __repr__(self) -> str:
        return "Session(token='***', passphrase='***')"


# ---------------------------------------------------------------------------
# Provisioning input
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ServiceInput:
    """Attributes of the service to provision.

    ``name`` names both the created project and the created service.
    """

    name: str | None = None
    organization: str | None = None

    def missing_fields(self) -> tuple[str, ...]:
        """Names of required fields that are absent or blank."""
        missing: list[str] = []
        if not (self.name or "").strip():
            missing.append("name")
        if not (self.organization or "").strip():
            missing.append("organization")
        return tuple(missing)


# ---------------------------------------------------------------------------
# Per-invocation context
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Context:
    """Per-invocation state threaded through the pipeline.

    ``parameters`` holds positional CLI arguments and ``options`` the
    named ones.  The session is attached at most once, before any
    business logic runs.
    """

    settings: Settings
    daemon: CredentialStore
    parameters: Sequence[str] = ()
    options: Mapping[str, Any] = field(default_factory=dict)
    session: Session | None = None
    session_resolved: bool = False

    def attach_session(self, session: Session | None) -> None:
        """Record the outcome of session resolution.

        Raises
        ------
        RuntimeError
            If resolution already happened for this context.
        """
        if self.session_resolved:
            raise RuntimeError("Session already resolved for this Context")
        self.session = session
        self.session_resolved = True
