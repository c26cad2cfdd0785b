from __future__ import annotations

from sqlalchemy.exc import OperationalError

from baseplane.domain.models import AuditLogEntry, Project, ProjectCredential
from baseplane.domain.types import PlanType, Role
from baseplane.domain.views import OrganizationView
from baseplane.persistence.repository import TenantRepository
from baseplane.services.control_plane import ControlPlane


OWNER_ID = 1
ADMIN_ID = 2
MEMBER_ID = 3
OUTSIDER_ID = 99


async def create_organization(
    control_plane: ControlPlane,
    *,
    name: str = "Acme",
    owner_id: int = OWNER_ID,
    members: dict[int, Role] | None = None,
) -> OrganizationView:
    # Create an organization owned by owner_id, then add the requested members.
    organization = await control_plane.create_organization(owner_id, name)
    for principal_id, role in (members or {ADMIN_ID: Role.ADMIN, MEMBER_ID: Role.MEMBER}).items():
        await control_plane.add_member(owner_id, organization.id, principal_id, role)
    return organization


async def set_project_limit(repository: TenantRepository, max_projects: int) -> None:
    # Organizations start on the free plan; tests tune its ceiling directly.
    await repository.upsert_plan_limit(PlanType.FREE, max_projects=max_projects)
    await repository.commit()


async def audit_actions(repository: TenantRepository, organization_id: int) -> list[str]:
    entries = await repository.list_audit_entries(organization_id=organization_id, limit=500)
    return [entry.action for entry in entries]


class FailingAuditRepository(TenantRepository):
    # Simulates an audit store outage while sharing the caller's session.

    async def append_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        raise OperationalError("INSERT INTO audit_log_entries", {}, Exception("audit store unavailable"))


class FailingCredentialsRepository(TenantRepository):
    # Infrastructure comes up but the credential row cannot be stored.

    async def create_credentials(self, **values: object) -> ProjectCredential:
        raise OperationalError("INSERT INTO project_credentials", {}, Exception("disk full"))


class SlugBlindRepository(TenantRepository):
    # Misses existing slugs, as a create racing another create would.

    async def get_project_by_slug(self, slug: str) -> Project | None:
        return None
