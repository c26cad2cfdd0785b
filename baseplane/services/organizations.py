from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable

from baseplane.core.config import get_settings
from baseplane.core.errors import (
    ConflictError,
    DuplicateRecordError,
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
)
from baseplane.domain.models import Membership, Organization, Subscription
from baseplane.domain.types import (
    BillingCycle,
    PlanType,
    Role,
    SubscriptionStatus,
)
from baseplane.domain.views import (
    AuditEntryView,
    MembershipView,
    OrganizationView,
    PlanLimitView,
    ProjectView,
    SubscriptionView,
)
from baseplane.persistence.repository import TenantRepository
from baseplane.services.access import AccessControl, normalize_role
from baseplane.services.audit import AuditRecorder
from baseplane.services.slugs import slugify, to_identifier


logger = logging.getLogger(__name__)

RESOURCE_ORGANIZATION = "organization"
RESOURCE_MEMBERSHIP = "membership"
RESOURCE_SUBSCRIPTION = "subscription"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def organization_database_name(slug: str) -> str:
    return f"supabase_org_{to_identifier(slug)}"


def _parse_role(role: Role | str) -> Role:
    try:
        return normalize_role(role)
    except ValueError as exc:
        raise PreconditionFailedError("invalid role") from exc


class OrganizationService:
    """Organizations, their memberships and the tenant-scoped read side."""

    def __init__(
        self,
        *,
        repository: TenantRepository,
        audit: AuditRecorder,
        access: AccessControl | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._audit = audit
        self._access = access or AccessControl(repository)
        self._time_provider = time_provider or _utc_now

    # Organizations

    async def create_organization(self, *, principal_id: int, name: str) -> OrganizationView:
        slug = slugify(name)
        if not slug:
            raise PreconditionFailedError("invalid organization name")
        if await self._repository.get_organization_by_slug(slug) is not None:
            raise ConflictError("organization with this name already exists")

        try:
            organization = await self._repository.create_organization(
                name=name,
                slug=slug,
                owner_principal_id=principal_id,
                org_database=organization_database_name(slug),
            )
        except DuplicateRecordError as exc:
            raise ConflictError("organization with this name already exists") from exc

        # The creator owns the organization, which starts on the free plan.
        await self._repository.create_membership(
            organization_id=organization.id, principal_id=principal_id, role=Role.OWNER
        )
        period_start = self._time_provider()
        await self._repository.create_subscription(
            organization_id=organization.id,
            plan_type=PlanType.FREE,
            status=SubscriptionStatus.ACTIVE,
            billing_cycle=BillingCycle.MONTHLY,
            current_period_start=period_start,
            current_period_end=period_start + timedelta(days=get_settings().default_subscription_days),
        )
        await self._repository.commit()
        view = OrganizationView.from_model(organization, role=Role.OWNER)

        logger.info("organization_created organization_id=%s slug=%s", view.id, view.slug)
        await self._audit.record(
            principal_id=principal_id,
            action="organization.created",
            resource_type=RESOURCE_ORGANIZATION,
            resource_id=view.id,
            organization_id=view.id,
            metadata={"name": view.name, "slug": view.slug},
        )
        return view

    async def update_organization(
        self, *, principal_id: int, organization_id: int, name: str
    ) -> OrganizationView:
        role = await self._access.check_role(principal_id, organization_id, Role.ADMIN)
        organization = await self._require_organization(organization_id)
        if not name.strip():
            raise PreconditionFailedError("invalid organization name")

        # The slug is an external identifier and never follows renames.
        await self._repository.update_organization(organization, name=name)
        await self._repository.commit()
        view = OrganizationView.from_model(organization, role=role)

        await self._audit.record(
            principal_id=principal_id,
            action="organization.updated",
            resource_type=RESOURCE_ORGANIZATION,
            resource_id=organization_id,
            organization_id=organization_id,
            metadata={"name": name},
        )
        return view

    async def delete_organization(self, *, principal_id: int, organization_id: int) -> None:
        await self._access.check_role(principal_id, organization_id, Role.OWNER)
        organization = await self._require_organization(organization_id)
        if await self._repository.count_active_projects(organization_id) > 0:
            raise PreconditionFailedError("cannot delete organization with active projects")

        slug = organization.slug
        await self._repository.delete_organization(organization)
        await self._repository.commit()

        logger.info("organization_deleted organization_id=%s slug=%s", organization_id, slug)
        await self._audit.record(
            principal_id=principal_id,
            action="organization.deleted",
            resource_type=RESOURCE_ORGANIZATION,
            resource_id=organization_id,
            organization_id=organization_id,
            metadata={"slug": slug},
        )

    async def list_organizations(self, *, principal_id: int) -> list[OrganizationView]:
        rows = await self._repository.list_organizations_for_principal(principal_id)
        return [OrganizationView.from_model(organization, role=role) for organization, role in rows]

    async def get_organization(self, *, principal_id: int, organization_id: int) -> OrganizationView:
        role = await self._access.check_role(principal_id, organization_id, Role.MEMBER)
        organization = await self._require_organization(organization_id)
        return OrganizationView.from_model(organization, role=role)

    # Members

    async def list_members(self, *, principal_id: int, organization_id: int) -> list[MembershipView]:
        await self._access.check_role(principal_id, organization_id, Role.MEMBER)
        memberships = await self._repository.list_memberships(organization_id)
        return [MembershipView.from_model(row) for row in memberships]

    async def add_member(
        self,
        *,
        principal_id: int,
        organization_id: int,
        member_principal_id: int,
        role: Role | str = Role.MEMBER,
    ) -> MembershipView:
        actor_role = await self._access.check_role(principal_id, organization_id, Role.ADMIN)
        target_role = _parse_role(role)
        if target_role == Role.OWNER and actor_role != Role.OWNER:
            raise ForbiddenError("only owners can grant the owner role")
        if await self._repository.get_membership(member_principal_id, organization_id) is not None:
            raise ConflictError("principal is already a member")

        try:
            membership = await self._repository.create_membership(
                organization_id=organization_id,
                principal_id=member_principal_id,
                role=target_role,
            )
        except DuplicateRecordError as exc:
            raise ConflictError("principal is already a member") from exc
        await self._repository.commit()
        view = MembershipView.from_model(membership)

        await self._audit.record(
            principal_id=principal_id,
            action="organization.member.added",
            resource_type=RESOURCE_MEMBERSHIP,
            resource_id=view.id,
            organization_id=organization_id,
            metadata={"member_principal_id": member_principal_id, "role": target_role.value},
        )
        return view

    async def update_member_role(
        self,
        *,
        principal_id: int,
        organization_id: int,
        member_principal_id: int,
        role: Role | str,
    ) -> MembershipView:
        await self._access.check_role(principal_id, organization_id, Role.OWNER)
        target_role = _parse_role(role)
        membership = await self._require_membership(member_principal_id, organization_id)
        previous_role = membership.role
        if previous_role == Role.OWNER and target_role != Role.OWNER:
            await self._ensure_not_last_owner(organization_id)

        await self._repository.update_membership(membership, role=target_role)
        await self._repository.commit()
        view = MembershipView.from_model(membership)

        await self._audit.record(
            principal_id=principal_id,
            action="organization.member.role_updated",
            resource_type=RESOURCE_MEMBERSHIP,
            resource_id=view.id,
            organization_id=organization_id,
            metadata={
                "member_principal_id": member_principal_id,
                "previous_role": previous_role.value,
                "role": target_role.value,
            },
        )
        return view

    async def remove_member(
        self, *, principal_id: int, organization_id: int, member_principal_id: int
    ) -> None:
        actor_role = await self._access.check_role(principal_id, organization_id, Role.ADMIN)
        membership = await self._require_membership(member_principal_id, organization_id)
        removed_role = membership.role
        membership_id = membership.id
        if removed_role == Role.OWNER:
            if actor_role != Role.OWNER:
                raise ForbiddenError("only owners can remove an owner")
            await self._ensure_not_last_owner(organization_id)

        await self._repository.delete_membership(membership)
        await self._repository.commit()

        await self._audit.record(
            principal_id=principal_id,
            action="organization.member.removed",
            resource_type=RESOURCE_MEMBERSHIP,
            resource_id=membership_id,
            organization_id=organization_id,
            metadata={"member_principal_id": member_principal_id, "role": removed_role.value},
        )

    # Billing

    async def get_subscription(self, *, principal_id: int, organization_id: int) -> SubscriptionView:
        await self._access.check_role(principal_id, organization_id, Role.MEMBER)
        subscription = await self._require_subscription(organization_id)
        return SubscriptionView.from_model(subscription)

    async def list_plans(self) -> list[PlanLimitView]:
        return [PlanLimitView.from_model(row) for row in await self._repository.list_plan_limits()]

    async def change_plan(
        self, *, principal_id: int, organization_id: int, plan_type: PlanType | str
    ) -> SubscriptionView:
        """Move the organization onto another plan and start a fresh billing period.

        No payment is taken; the new plan's limits apply to the next quota check.
        """
        await self._access.check_role(principal_id, organization_id, Role.OWNER)
        try:
            target_plan = PlanType(plan_type)
        except ValueError as exc:
            raise PreconditionFailedError("invalid plan") from exc
        if await self._repository.get_plan_limit(target_plan) is None:
            raise PreconditionFailedError("plan is not available")

        subscription = await self._require_subscription(organization_id)
        previous_plan = subscription.plan_type
        subscription_id = subscription.id
        period_start = self._time_provider()
        await self._repository.update_subscription(
            subscription,
            plan_type=target_plan,
            current_period_start=period_start,
            current_period_end=period_start + timedelta(days=get_settings().default_subscription_days),
        )
        await self._repository.commit()
        view = SubscriptionView.from_model(subscription)

        logger.info(
            "subscription_changed organization_id=%s previous_plan=%s plan=%s",
            organization_id,
            previous_plan.value,
            target_plan.value,
        )
        await self._audit.record(
            principal_id=principal_id,
            action="organization.subscription.updated",
            resource_type=RESOURCE_SUBSCRIPTION,
            resource_id=subscription_id,
            organization_id=organization_id,
            metadata={"previous_plan": previous_plan.value, "plan": target_plan.value},
        )
        return view

    # Read side

    async def list_projects(self, *, principal_id: int, organization_id: int) -> list[ProjectView]:
        await self._access.check_role(principal_id, organization_id, Role.MEMBER)
        projects = await self._repository.list_projects(organization_id, include_deleted=False)
        return [ProjectView.from_model(row) for row in projects]

    async def get_project(self, *, principal_id: int, project_id: int) -> ProjectView:
        project, _role = await self._access.check_project_role(principal_id, project_id, Role.MEMBER)
        return ProjectView.from_model(project)

    async def list_audit_entries(
        self,
        *,
        principal_id: int,
        organization_id: int,
        action: str | None = None,
        project_id: int | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> list[AuditEntryView]:
        await self._access.check_role(principal_id, organization_id, Role.ADMIN)
        # Clamp paging so a single request cannot scan the whole audit table.
        limit = max(1, min(limit, get_settings().audit_list_max_limit))
        offset = max(0, offset)
        entries = await self._repository.list_audit_entries(
            organization_id=organization_id,
            action=action,
            project_id=project_id,
            offset=offset,
            limit=limit,
        )
        return [AuditEntryView.from_model(row) for row in entries]

    async def _require_organization(self, organization_id: int) -> Organization:
        organization = await self._repository.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("organization not found")
        return organization

    async def _require_membership(self, principal_id: int, organization_id: int) -> Membership:
        membership = await self._repository.get_membership(principal_id, organization_id)
        if membership is None:
            raise NotFoundError("member not found")
        return membership

    async def _ensure_not_last_owner(self, organization_id: int) -> None:
        if await self._repository.count_owners(organization_id) <= 1:
            raise PreconditionFailedError("organization must keep at least one owner")

    async def _require_subscription(self, organization_id: int) -> Subscription:
        subscription = await self._repository.get_subscription(organization_id)
        if subscription is None:
            raise NotFoundError("subscription not found")
        return subscription
