from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from baseplane.core.errors import ConflictError, DuplicateRecordError
from baseplane.domain.models import (
    AuditLogEntry,
    Membership,
    Organization,
    PlanLimit,
    Project,
    ProjectCredential,
    Subscription,
)
from baseplane.domain.types import PlanType, ProjectStatus, Role


class TenantRepository:
    """Durable storage for tenants, bound to one ``AsyncSession``.

    Writes are flushed immediately so unique-constraint violations surface at the
    call site as ``DuplicateRecordError``; callers decide when to ``commit``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def _insert(self, row: Any) -> Any:
        self.session.add(row)
        await self._flush()
        return row

    async def _flush(self) -> None:
        # A failed flush leaves the transaction unusable; roll back before surfacing the error.
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConflictError("project was modified concurrently") from exc

    # Organizations

    async def create_organization(
        self, *, name: str, slug: str, owner_principal_id: int, org_database: str
    ) -> Organization:
        return await self._insert(
            Organization(
                name=name,
                slug=slug,
                owner_principal_id=owner_principal_id,
                org_database=org_database,
            )
        )

    async def get_organization(self, organization_id: int) -> Organization | None:
        return await self.session.get(Organization, organization_id)

    async def get_organization_by_slug(self, slug: str) -> Organization | None:
        result = await self.session.execute(select(Organization).where(Organization.slug == slug))
        return result.scalar_one_or_none()

    async def list_organizations_for_principal(self, principal_id: int) -> list[tuple[Organization, Role]]:
        result = await self.session.execute(
            select(Organization, Membership.role)
            .join(Membership, Membership.organization_id == Organization.id)
            .where(Membership.principal_id == principal_id)
            .order_by(Organization.id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def update_organization(self, organization: Organization, **values: Any) -> Organization:
        for key, value in values.items():
            setattr(organization, key, value)
        await self._flush()
        return organization

    async def delete_organization(self, organization: Organization) -> None:
        # Remove dependents first; only rows of deleted projects can remain at this point.
        project_ids = select(Project.id).where(Project.organization_id == organization.id)
        await self.session.execute(
            delete(ProjectCredential).where(ProjectCredential.project_id.in_(project_ids))
        )
        await self.session.execute(delete(Project).where(Project.organization_id == organization.id))
        await self.session.execute(
            delete(Subscription).where(Subscription.organization_id == organization.id)
        )
        await self.session.execute(
            delete(Membership).where(Membership.organization_id == organization.id)
        )
        await self.session.delete(organization)
        await self._flush()

    # Memberships

    async def create_membership(
        self, *, organization_id: int, principal_id: int, role: Role
    ) -> Membership:
        return await self._insert(
            Membership(organization_id=organization_id, principal_id=principal_id, role=role)
        )

    async def get_membership(self, principal_id: int, organization_id: int) -> Membership | None:
        result = await self.session.execute(
            select(Membership).where(
                Membership.principal_id == principal_id,
                Membership.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_memberships(self, organization_id: int) -> list[Membership]:
        result = await self.session.execute(
            select(Membership)
            .where(Membership.organization_id == organization_id)
            .order_by(Membership.joined_at, Membership.id)
        )
        return list(result.scalars().all())

    async def count_owners(self, organization_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Membership)
            .where(Membership.organization_id == organization_id, Membership.role == Role.OWNER)
        )
        return int(result.scalar_one())

    async def update_membership(self, membership: Membership, *, role: Role) -> Membership:
        membership.role = role
        await self._flush()
        return membership

    async def delete_membership(self, membership: Membership) -> None:
        await self.session.delete(membership)
        await self._flush()

    # Projects

    async def create_project(
        self,
        *,
        name: str,
        slug: str,
        organization_id: int,
        region: str,
        database_name: str,
        database_schema: str,
    ) -> Project:
        return await self._insert(
            Project(
                name=name,
                slug=slug,
                organization_id=organization_id,
                region=region,
                status=ProjectStatus.PROVISIONING,
                database_name=database_name,
                database_schema=database_schema,
            )
        )

    async def get_project(self, project_id: int) -> Project | None:
        return await self.session.get(Project, project_id)

    async def get_project_by_slug(self, slug: str) -> Project | None:
        result = await self.session.execute(select(Project).where(Project.slug == slug))
        return result.scalar_one_or_none()

    async def list_projects(
        self, organization_id: int, *, include_deleted: bool = True
    ) -> list[Project]:
        stmt = select(Project).where(Project.organization_id == organization_id)
        if not include_deleted:
            stmt = stmt.where(Project.status != ProjectStatus.DELETED)
        result = await self.session.execute(stmt.order_by(Project.created_at.desc(), Project.id.desc()))
        return list(result.scalars().all())

    async def count_active_projects(self, organization_id: int) -> int:
        # "Active" here means every project that still holds (or is acquiring) resources.
        result = await self.session.execute(
            select(func.count())
            .select_from(Project)
            .where(
                Project.organization_id == organization_id,
                Project.status != ProjectStatus.DELETED,
            )
        )
        return int(result.scalar_one())

    async def list_projects_in_status(
        self, statuses: Iterable[ProjectStatus], *, updated_before: datetime
    ) -> list[Project]:
        result = await self.session.execute(
            select(Project)
            .where(Project.status.in_(list(statuses)), Project.updated_at < updated_before)
            .order_by(Project.updated_at)
        )
        return list(result.scalars().all())

    async def update_project(self, project: Project, **values: Any) -> Project:
        for key, value in values.items():
            setattr(project, key, value)
        await self._flush()
        return project

    # Credentials

    async def create_credentials(self, **values: Any) -> ProjectCredential:
        return await self._insert(ProjectCredential(**values))

    async def get_credentials(self, project_id: int) -> ProjectCredential | None:
        result = await self.session.execute(
            select(ProjectCredential).where(ProjectCredential.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def update_credentials(self, credential: ProjectCredential, **values: Any) -> ProjectCredential:
        for key, value in values.items():
            setattr(credential, key, value)
        await self._flush()
        return credential

    async def delete_credentials(self, project_id: int) -> None:
        await self.session.execute(
            delete(ProjectCredential).where(ProjectCredential.project_id == project_id)
        )

    # Subscriptions and plans

    async def create_subscription(self, **values: Any) -> Subscription:
        return await self._insert(Subscription(**values))

    async def get_subscription(self, organization_id: int) -> Subscription | None:
        result = await self.session.execute(
            select(Subscription).where(Subscription.organization_id == organization_id)
        )
        return result.scalar_one_or_none()

    async def update_subscription(self, subscription: Subscription, **values: Any) -> Subscription:
        for key, value in values.items():
            setattr(subscription, key, value)
        await self._flush()
        return subscription

    async def get_plan_limit(self, plan_type: PlanType) -> PlanLimit | None:
        result = await self.session.execute(select(PlanLimit).where(PlanLimit.plan_type == plan_type))
        return result.scalar_one_or_none()

    async def list_plan_limits(self) -> list[PlanLimit]:
        result = await self.session.execute(select(PlanLimit).order_by(PlanLimit.id))
        return list(result.scalars().all())

    async def upsert_plan_limit(self, plan_type: PlanType, **values: Any) -> PlanLimit:
        existing = await self.get_plan_limit(plan_type)
        if existing is None:
            return await self._insert(PlanLimit(plan_type=plan_type, **values))
        for key, value in values.items():
            setattr(existing, key, value)
        await self._flush()
        return existing

    # Audit

    async def append_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_audit_entries(
        self,
        *,
        organization_id: int,
        action: str | None = None,
        project_id: int | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[AuditLogEntry]:
        # Scope all audit queries to one organization to prevent cross-tenant leakage.
        stmt = select(AuditLogEntry).where(AuditLogEntry.organization_id == organization_id)
        if action:
            stmt = stmt.where(AuditLogEntry.action == action)
        if project_id is not None:
            stmt = stmt.where(AuditLogEntry.project_id == project_id)
        stmt = stmt.order_by(AuditLogEntry.occurred_at.desc(), AuditLogEntry.id.desc())
        result = await self.session.execute(stmt.offset(offset).limit(limit))
        return list(result.scalars().all())
