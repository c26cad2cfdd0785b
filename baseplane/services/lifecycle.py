from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Callable

from baseplane.core.config import get_settings
from baseplane.core.errors import (
    ConflictError,
    DuplicateRecordError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
    ProvisioningError,
)
from baseplane.domain.models import Project
from baseplane.domain.types import ProjectStatus, Role, can_transition
from baseplane.domain.views import ProjectView
from baseplane.persistence.repository import TenantRepository
from baseplane.providers.infrastructure.base import InfrastructureProvisioner, OrganizationContext
from baseplane.services.access import AccessControl
from baseplane.services.audit import AuditRecorder
from baseplane.services.credentials import CredentialIssuer
from baseplane.services.quota import QuotaEnforcer
from baseplane.services.slugs import slugify, to_identifier


logger = logging.getLogger(__name__)

RESOURCE_PROJECT = "project"


class ProjectStateError(PreconditionFailedError):
    """Requested transition is not allowed from the project's current status."""


@dataclass(frozen=True)
class CreatedProject:
    id: int
    slug: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectLifecycle:
    """Owns every change to a project's status.

    provisioning -> active, active <-> paused, {provisioning, active, paused} ->
    deleting -> deleted. Create and delete commit a transitional status before the
    fallible infrastructure call and compensate explicitly when that call fails;
    pause and resume are check-then-single-write.
    """

    def __init__(
        self,
        *,
        repository: TenantRepository,
        provisioner: InfrastructureProvisioner,
        issuer: CredentialIssuer,
        audit: AuditRecorder,
        access: AccessControl | None = None,
        quota: QuotaEnforcer | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._provisioner = provisioner
        self._issuer = issuer
        self._audit = audit
        self._access = access or AccessControl(repository)
        self._quota = quota or QuotaEnforcer(repository)
        self._time_provider = time_provider or _utc_now

    async def create_project(
        self,
        *,
        principal_id: int,
        organization_id: int,
        name: str,
        region: str | None = None,
    ) -> CreatedProject:
        await self._access.check_role(principal_id, organization_id, Role.ADMIN)
        # Quota runs before the slug check so rejected requests never claim a slug.
        await self._quota.check_can_create_project(organization_id)

        slug = slugify(name)
        if not slug:
            raise PreconditionFailedError("invalid project name")
        if await self._repository.get_project_by_slug(slug) is not None:
            raise ConflictError("project with this name already exists")

        organization = await self._repository.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("organization not found")
        org_context = OrganizationContext(
            organization_id=organization.id,
            slug=organization.slug,
            org_database=organization.org_database,
        )
        resolved_region = region or get_settings().default_region

        try:
            project = await self._repository.create_project(
                name=name,
                slug=slug,
                organization_id=organization_id,
                region=resolved_region,
                database_name=organization.org_database,
                database_schema=f"project_{to_identifier(slug)}",
            )
        except DuplicateRecordError as exc:
            # A concurrent create won the unique constraint after our pre-check passed.
            raise ConflictError("project with this name already exists") from exc
        project_id = project.id
        # Commit the provisioning row so the transitional state is visible and diagnosable.
        await self._repository.commit()

        provisioned = False
        try:
            result = await self._provisioner.provision(slug, org_context, resolved_region)
            provisioned = True
            tokens = self._issuer.issue_token_pair(result.signing_secret)
            await self._repository.create_credentials(
                project_id=project_id,
                signing_secret=result.signing_secret,
                anon_token=tokens.anon_token,
                service_token=tokens.service_token,
                db_username=result.db_username,
                db_password=result.db_password,
                storage_bucket=result.storage_bucket,
                connection_descriptor=result.connection_descriptor,
            )
            await self._transition(
                project,
                ProjectStatus.ACTIVE,
                database_host=result.host,
                database_port=result.port,
            )
            await self._repository.commit()
        except Exception as exc:  # noqa: BLE001
            if provisioned:
                await self._release_orphaned_infrastructure(project_id, slug, org_context.org_database)
            await self._rollback_failed_provisioning(project_id, slug, exc)
            await self._audit.record(
                principal_id=principal_id,
                action="project.provisioning_failed",
                resource_type=RESOURCE_PROJECT,
                resource_id=project_id,
                organization_id=organization_id,
                project_id=project_id,
                metadata={"slug": slug, "region": resolved_region, "error": type(exc).__name__},
            )
            raise InternalError("failed to provision project infrastructure") from exc

        logger.info(
            "project_created project_id=%s slug=%s organization_id=%s region=%s",
            project_id,
            slug,
            organization_id,
            resolved_region,
        )
        await self._audit.record(
            principal_id=principal_id,
            action="project.created",
            resource_type=RESOURCE_PROJECT,
            resource_id=project_id,
            organization_id=organization_id,
            project_id=project_id,
            metadata={"slug": slug, "region": resolved_region},
        )
        return CreatedProject(id=project_id, slug=slug)

    async def pause_project(self, *, principal_id: int, project_id: int) -> ProjectView:
        project, _role = await self._access.check_project_role(principal_id, project_id, Role.ADMIN)
        if project.status != ProjectStatus.ACTIVE:
            raise ProjectStateError("project is not active")

        await self._call_hook("pause", project.slug, "failed to pause project")
        await self._transition(project, ProjectStatus.PAUSED, paused_at=self._time_provider())
        await self._repository.commit()
        return await self._record_project_event(principal_id, project, "project.paused")

    async def resume_project(self, *, principal_id: int, project_id: int) -> ProjectView:
        project, _role = await self._access.check_project_role(principal_id, project_id, Role.ADMIN)
        if project.status != ProjectStatus.PAUSED:
            raise ProjectStateError("project is not paused")

        await self._call_hook("resume", project.slug, "failed to resume project")
        await self._transition(project, ProjectStatus.ACTIVE, paused_at=None)
        await self._repository.commit()
        return await self._record_project_event(principal_id, project, "project.resumed")

    async def delete_project(self, *, principal_id: int, project_id: int) -> ProjectView:
        project, _role = await self._access.check_project_role(principal_id, project_id, Role.ADMIN)
        if not can_transition(project.status, ProjectStatus.DELETING):
            raise ProjectStateError(f"project cannot be deleted while {project.status.value}")

        slug = project.slug
        database_name = project.database_name
        # Commit deleting first so concurrent operations see the project as unavailable.
        await self._transition(project, ProjectStatus.DELETING)
        await self._repository.commit()

        try:
            await self._provisioner.deprovision(slug, database_name)
        except Exception as exc:  # noqa: BLE001
            # Compensating action only: infrastructure may be partially removed while the
            # row reads active again. Operators reconcile from the audit/stuck reports.
            logger.error(
                "project_deprovision_failed project_id=%s slug=%s; restoring status=active",
                project_id,
                slug,
                exc_info=exc,
            )
            await self._transition(project, ProjectStatus.ACTIVE)
            await self._repository.commit()
            raise InternalError("failed to delete project") from exc

        await self._repository.delete_credentials(project_id)
        await self._transition(project, ProjectStatus.DELETED, deleted_at=self._time_provider())
        await self._repository.commit()
        return await self._record_project_event(principal_id, project, "project.deleted")

    async def _transition(self, project: Project, target: ProjectStatus, **values: Any) -> None:
        if not can_transition(project.status, target):
            raise ProjectStateError(
                f"illegal project transition {project.status.value} -> {target.value}"
            )
        await self._repository.update_project(project, status=target, **values)

    async def _call_hook(self, operation: str, slug: str, failure_message: str) -> None:
        hook = getattr(self._provisioner, operation)
        try:
            await hook(slug)
        except ProvisioningError as exc:
            logger.error("project_%s_hook_failed slug=%s", operation, slug, exc_info=exc)
            raise InternalError(failure_message) from exc

    async def _release_orphaned_infrastructure(
        self, project_id: int, slug: str, database_name: str
    ) -> None:
        # provision() succeeded but a later step failed; the row lands deleted, so tear down now.
        try:
            await self._provisioner.deprovision(slug, database_name)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "project_orphan_deprovision_failed project_id=%s slug=%s",
                project_id,
                slug,
                exc_info=exc,
            )

    async def _rollback_failed_provisioning(self, project_id: int, slug: str, exc: Exception) -> None:
        logger.error(
            "project_provisioning_failed project_id=%s slug=%s; marking deleted",
            project_id,
            slug,
            exc_info=exc,
        )
        # Discard any half-written credential row before landing the terminal status.
        await self._repository.rollback()
        project = await self._repository.get_project(project_id)
        if project is None:
            return
        await self._transition(project, ProjectStatus.DELETED, deleted_at=self._time_provider())
        await self._repository.commit()

    async def _record_project_event(
        self, principal_id: int, project: Project, action: str
    ) -> ProjectView:
        # Snapshot before auditing; a failed audit write rolls back and expires loaded rows.
        view = ProjectView.from_model(project)
        await self._audit.record(
            principal_id=principal_id,
            action=action,
            resource_type=RESOURCE_PROJECT,
            resource_id=view.id,
            organization_id=view.organization_id,
            project_id=view.id,
            metadata={"slug": view.slug, "status": view.status.value},
        )
        return view
