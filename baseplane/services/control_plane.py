from __future__ import annotations

from datetime import datetime
from typing import Callable

from baseplane.domain.types import PlanType, Role
from baseplane.domain.views import (
    AuditEntryView,
    CredentialView,
    MembershipView,
    OrganizationView,
    PlanLimitView,
    ProjectView,
    SubscriptionView,
)
from baseplane.persistence.repository import TenantRepository
from baseplane.providers.infrastructure.base import InfrastructureProvisioner
from baseplane.services.access import AccessControl
from baseplane.services.audit import AuditRecorder
from baseplane.services.credentials import CredentialIssuer, RotatedCredentials, TokenPair
from baseplane.services.lifecycle import CreatedProject, ProjectLifecycle
from baseplane.services.organizations import OrganizationService
from baseplane.services.quota import QuotaEnforcer
from baseplane.services.rotation import CredentialRotation


class ControlPlane:
    """Single entry point for tenant operations within one unit of work.

    Built per request (or per script run) around one repository session; the
    collaborators are injected so tests swap in a fake provisioner or a fixed clock.
    """

    def __init__(
        self,
        *,
        repository: TenantRepository,
        provisioner: InfrastructureProvisioner,
        issuer: CredentialIssuer | None = None,
        audit: AuditRecorder | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        issuer = issuer or CredentialIssuer(time_provider=time_provider)
        audit = audit or AuditRecorder(repository)
        access = AccessControl(repository)
        self.lifecycle = ProjectLifecycle(
            repository=repository,
            provisioner=provisioner,
            issuer=issuer,
            audit=audit,
            access=access,
            quota=QuotaEnforcer(repository),
            time_provider=time_provider,
        )
        self.rotation = CredentialRotation(
            repository=repository, issuer=issuer, audit=audit, access=access
        )
        self.organizations = OrganizationService(
            repository=repository, audit=audit, access=access, time_provider=time_provider
        )

    # Project lifecycle

    async def create_project(
        self, principal_id: int, organization_id: int, name: str, region: str | None = None
    ) -> CreatedProject:
        return await self.lifecycle.create_project(
            principal_id=principal_id, organization_id=organization_id, name=name, region=region
        )

    async def pause_project(self, principal_id: int, project_id: int) -> ProjectView:
        return await self.lifecycle.pause_project(principal_id=principal_id, project_id=project_id)

    async def resume_project(self, principal_id: int, project_id: int) -> ProjectView:
        return await self.lifecycle.resume_project(principal_id=principal_id, project_id=project_id)

    async def delete_project(self, principal_id: int, project_id: int) -> ProjectView:
        return await self.lifecycle.delete_project(principal_id=principal_id, project_id=project_id)

    # Credentials

    async def get_credentials(self, principal_id: int, project_id: int) -> CredentialView:
        return await self.rotation.get_credentials(principal_id=principal_id, project_id=project_id)

    async def regenerate_api_keys(self, principal_id: int, project_id: int) -> TokenPair:
        return await self.rotation.regenerate_api_keys(principal_id=principal_id, project_id=project_id)

    async def regenerate_signing_secret(self, principal_id: int, project_id: int) -> RotatedCredentials:
        return await self.rotation.regenerate_signing_secret(
            principal_id=principal_id, project_id=project_id
        )

    # Organizations and members

    async def create_organization(self, principal_id: int, name: str) -> OrganizationView:
        return await self.organizations.create_organization(principal_id=principal_id, name=name)

    async def update_organization(
        self, principal_id: int, organization_id: int, name: str
    ) -> OrganizationView:
        return await self.organizations.update_organization(
            principal_id=principal_id, organization_id=organization_id, name=name
        )

    async def delete_organization(self, principal_id: int, organization_id: int) -> None:
        await self.organizations.delete_organization(
            principal_id=principal_id, organization_id=organization_id
        )

    async def list_organizations(self, principal_id: int) -> list[OrganizationView]:
        return await self.organizations.list_organizations(principal_id=principal_id)

    async def get_organization(self, principal_id: int, organization_id: int) -> OrganizationView:
        return await self.organizations.get_organization(
            principal_id=principal_id, organization_id=organization_id
        )

    async def list_members(self, principal_id: int, organization_id: int) -> list[MembershipView]:
        return await self.organizations.list_members(
            principal_id=principal_id, organization_id=organization_id
        )

    async def add_member(
        self,
        principal_id: int,
        organization_id: int,
        member_principal_id: int,
        role: Role | str = Role.MEMBER,
    ) -> MembershipView:
        return await self.organizations.add_member(
            principal_id=principal_id,
            organization_id=organization_id,
            member_principal_id=member_principal_id,
            role=role,
        )

    async def update_member_role(
        self, principal_id: int, organization_id: int, member_principal_id: int, role: Role | str
    ) -> MembershipView:
        return await self.organizations.update_member_role(
            principal_id=principal_id,
            organization_id=organization_id,
            member_principal_id=member_principal_id,
            role=role,
        )

    async def remove_member(
        self, principal_id: int, organization_id: int, member_principal_id: int
    ) -> None:
        await self.organizations.remove_member(
            principal_id=principal_id,
            organization_id=organization_id,
            member_principal_id=member_principal_id,
        )

    # Billing

    async def get_subscription(self, principal_id: int, organization_id: int) -> SubscriptionView:
        return await self.organizations.get_subscription(
            principal_id=principal_id, organization_id=organization_id
        )

    async def list_plans(self) -> list[PlanLimitView]:
        return await self.organizations.list_plans()

    async def change_plan(
        self, principal_id: int, organization_id: int, plan_type: PlanType | str
    ) -> SubscriptionView:
        return await self.organizations.change_plan(
            principal_id=principal_id, organization_id=organization_id, plan_type=plan_type
        )

    # Read side

    async def list_projects(self, principal_id: int, organization_id: int) -> list[ProjectView]:
        return await self.organizations.list_projects(
            principal_id=principal_id, organization_id=organization_id
        )

    async def get_project(self, principal_id: int, project_id: int) -> ProjectView:
        return await self.organizations.get_project(principal_id=principal_id, project_id=project_id)

    async def list_audit_entries(
        self,
        principal_id: int,
        organization_id: int,
        *,
        action: str | None = None,
        project_id: int | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[AuditEntryView]:
        return await self.organizations.list_audit_entries(
            principal_id=principal_id,
            organization_id=organization_id,
            action=action,
            project_id=project_id,
            offset=offset,
            limit=limit,
        )
