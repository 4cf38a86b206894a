"""Core / service layer — domain models and the provisioning pipeline.

Rules
-----
* No ``print()`` calls.
* No direct socket or HTTP I/O; adapters are injected via protocols.
* No imports from ``cli`` or ``infra``.
"""

from orgctl.core.models import (
    Context,
    Credentials,
    Organization,
    Project,
    Service,
    ServiceInput,
    Session,
)
from orgctl.core.protocols import CredentialStore, MissingFieldResolver
from orgctl.core.provisioner import ServiceProvisioner
from orgctl.core.session import resolve_session

__all__: list[str] = [
    "Context",
    "CredentialStore",
    "Credentials",
    "MissingFieldResolver",
    "Organization",
    "Project",
    "Service",
    "ServiceInput",
    "ServiceProvisioner",
    "Session",
    "resolve_session",
]
