"""Service provisioning — resolve organization, create project and service.

The pipeline is a strictly sequential chain; each step's identifier
feeds the next step's request:

1. ``GET /orgs?name=<org>``            → :class:`Organization`
2. ``POST /projects``  ``{name, organizationId}``           → :class:`Project`
3. ``POST /services``  ``{name, projectId, organizationId}`` → :class:`Service`

Project and service creation are unconditional: running the pipeline
twice with the same input creates two projects.  There is no rollback;
a failed service creation leaves the new project in place.

Guarantees
----------
* No network access without a session.
* No ``print()``; only :class:`~orgctl.exceptions.OrgctlError`
  subclasses escape.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from orgctl.core.models import Context, Organization, Project, Service, ServiceInput, Session
from orgctl.core.protocols import ApiClientLike, MissingFieldResolver, SessionApi
from orgctl.exceptions import (
    AmbiguousOrganizationError,
    ApiError,
    OrganizationNotFoundError,
    SessionMissingError,
    ValidationError,
)

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")
"""Resource names: lowercase alphanumerics, ``-`` and ``_``, at most 64 chars."""


def validate_name(value: str, field_name: str) -> str:
    """Return *value* stripped, or raise :class:`ValidationError`."""
    stripped = value.strip()
    if not NAME_PATTERN.match(stripped):
        raise ValidationError(
            f"Invalid {field_name}: {stripped!r}",
            fields=(field_name,),
            hint="Use lowercase letters, digits, '-' or '_' (max 64 characters).",
        )
    return stripped


class ServiceProvisioner:
    """Creates a project and a service under an existing organization.

    Parameters
    ----------
    client:
        API client; its ``auth`` returns a session-bound request helper.
    resolver:
        Optional capability asked for input missing from the context.
        ``None`` means missing input is an error (headless mode).
    """

    def __init__(
        self,
        client: ApiClientLike,
        resolver: MissingFieldResolver | None = None,
    ) -> None:
        self._client: ApiClientLike = client
        self._resolver: MissingFieldResolver | None = resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def execute(self, context: Context) -> Service:
        """Gather input from *context* and run the pipeline.

        Raises
        ------
        ValidationError
            If required input is still missing after prompting.
        SessionMissingError
            If no session is attached to *context*.
        ApiError, OrganizationNotFoundError, AmbiguousOrganizationError
            On API failures during the pipeline.
        """
        service_input = self._input_from_context(context)
        missing = service_input.missing_fields()
        if missing:
            service_input = self._prompt(missing, service_input)

        service_input = self._validate(service_input)
        return self._execute(
            context.session,
            service_input,
            service_input.organization or "",
        )

    def _execute(
        self,
        session: Session | None,
        service_input: ServiceInput,
        organization_name: str,
    ) -> Service:
        """Run the resolve → create → create chain.

        The session check happens before anything touches the client.
        """
        if session is None:
            raise SessionMissingError()

        api = self._client.auth(session)

        organization = self._resolve_organization(api, organization_name)
        project = self._create_project(api, service_input, organization)
        try:
            return self._create_service(api, service_input, project, organization)
        except ApiError:
            logger.warning(
                "Service creation failed; project %s (%s) was left in place",
                project.name,
                project.id,
            )
            raise

    # ------------------------------------------------------------------
    # Input gathering
    # ------------------------------------------------------------------

    @staticmethod
    def _input_from_context(context: Context) -> ServiceInput:
        name = context.parameters[0] if context.parameters else None
        organization = context.options.get("org")
        return ServiceInput(name=name, organization=organization)

    def _prompt(
        self,
        missing: tuple[str, ...],
        current: ServiceInput,
    ) -> ServiceInput:
        """Ask the injected resolver for *missing* fields, exactly once."""
        if self._resolver is None:
            raise ValidationError(
                f"Missing required input: {', '.join(missing)}",
                fields=missing,
                hint="Pass the service name and --org, or allow prompting.",
            )
        logger.debug("Prompting for missing fields: %s", ", ".join(missing))
        return self._resolver.resolve(missing, current)

    @staticmethod
    def _validate(service_input: ServiceInput) -> ServiceInput:
        still_missing = service_input.missing_fields()
        if still_missing:
            raise ValidationError(
                f"Missing required input: {', '.join(still_missing)}",
                fields=still_missing,
            )
        return replace(
            service_input,
            name=validate_name(service_input.name or "", "name"),
            organization=validate_name(service_input.organization or "", "organization"),
        )

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_organization(api: SessionApi, name: str) -> Organization:
        response = api.get("/orgs", params={"name": name})
        records = list(response.body)
        if not records:
            raise OrganizationNotFoundError(
                f"Organization not found: {name}",
                hint="Check the name with your organization administrator.",
            )
        if len(records) > 1:
            raise AmbiguousOrganizationError(
                f"{len(records)} organizations match the name {name!r}",
            )
        organization = Organization.from_record(records[0])
        logger.debug("Resolved organization %s (%s)", organization.name, organization.id)
        return organization

    @staticmethod
    def _create_project(
        api: SessionApi,
        service_input: ServiceInput,
        organization: Organization,
    ) -> Project:
        response = api.post(
            "/projects",
            json={
                "body": {
                    "name": service_input.name,
                    "organizationId": organization.id,
                },
            },
        )
        if not response.body:
            raise ApiError("/projects", response.status, "empty response body")
        project = Project.from_record(response.body[0])
        logger.debug("Created project %s (%s)", project.name, project.id)
        return project

    @staticmethod
    def _create_service(
        api: SessionApi,
        service_input: ServiceInput,
        project: Project,
        organization: Organization,
    ) -> Service:
        response = api.post(
            "/services",
            json={
                "body": {
                    "name": service_input.name,
                    "projectId": project.id,
                    "organizationId": organization.id,
                },
            },
        )
        if not response.body:
            raise ApiError("/services", response.status, "empty response body")
        service = Service.from_record(response.body[0])
        logger.debug("Created service %s (%s)", service.name, service.id)
        return service
