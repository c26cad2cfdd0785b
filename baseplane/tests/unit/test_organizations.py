from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from baseplane.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
)
from baseplane.domain.types import BillingCycle, PlanType, Role, SubscriptionStatus
from baseplane.services.control_plane import ControlPlane
from baseplane.tests.utils.tenants import (
    ADMIN_ID,
    MEMBER_ID,
    OUTSIDER_ID,
    OWNER_ID,
    audit_actions,
    create_organization,
)


@pytest.mark.asyncio
async def test_create_organization_sets_up_owner_and_free_plan(control_plane, repository) -> None:
    organization = await control_plane.create_organization(OWNER_ID, "Acme Corp")

    assert organization.slug == "acme-corp"
    assert organization.org_database == "supabase_org_acme_corp"
    assert organization.role == Role.OWNER
    membership = await repository.get_membership(OWNER_ID, organization.id)
    assert membership.role == Role.OWNER

    subscription = await repository.get_subscription(organization.id)
    assert subscription.plan_type == PlanType.FREE
    assert subscription.status == SubscriptionStatus.ACTIVE
    assert subscription.billing_cycle == BillingCycle.MONTHLY
    assert subscription.current_period_end - subscription.current_period_start == timedelta(days=30)
    assert "organization.created" in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_create_organization_rejects_duplicate_slug(control_plane) -> None:
    await control_plane.create_organization(OWNER_ID, "Acme")
    with pytest.raises(ConflictError):
        await control_plane.create_organization(ADMIN_ID, "ACME!")


@pytest.mark.asyncio
async def test_update_organization_keeps_slug(control_plane) -> None:
    organization = await create_organization(control_plane)
    updated = await control_plane.update_organization(ADMIN_ID, organization.id, "Acme Renamed")
    assert updated.name == "Acme Renamed"
    assert updated.slug == organization.slug
    with pytest.raises(ForbiddenError):
        await control_plane.update_organization(MEMBER_ID, organization.id, "Nope")


@pytest.mark.asyncio
async def test_list_and_get_organizations_are_scoped_to_membership(control_plane) -> None:
    acme = await create_organization(control_plane, name="Acme")
    await control_plane.create_organization(OUTSIDER_ID, "Elsewhere")

    listed = await control_plane.list_organizations(MEMBER_ID)
    assert [(org.id, org.role) for org in listed] == [(acme.id, Role.MEMBER)]
    assert (await control_plane.get_organization(MEMBER_ID, acme.id)).name == "Acme"
    with pytest.raises(ForbiddenError):
        await control_plane.get_organization(OUTSIDER_ID, acme.id)


@pytest.mark.asyncio
async def test_delete_organization_requires_owner_and_no_live_projects(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Blocker")

    with pytest.raises(ForbiddenError):
        await control_plane.delete_organization(ADMIN_ID, organization.id)
    with pytest.raises(PreconditionFailedError):
        await control_plane.delete_organization(OWNER_ID, organization.id)

    await control_plane.delete_project(OWNER_ID, created.id)
    await control_plane.delete_organization(OWNER_ID, organization.id)

    assert await repository.get_organization(organization.id) is None
    assert await repository.get_subscription(organization.id) is None
    assert await repository.list_memberships(organization.id) == []
    assert "organization.deleted" in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_add_member_rules(control_plane) -> None:
    organization = await create_organization(control_plane)

    added = await control_plane.add_member(ADMIN_ID, organization.id, 10, "member")
    assert added.role == Role.MEMBER
    with pytest.raises(ConflictError):
        await control_plane.add_member(OWNER_ID, organization.id, 10, Role.ADMIN)
    with pytest.raises(ForbiddenError, match="only owners"):
        await control_plane.add_member(ADMIN_ID, organization.id, 11, Role.OWNER)
    with pytest.raises(ForbiddenError):
        await control_plane.add_member(MEMBER_ID, organization.id, 12, Role.MEMBER)
    with pytest.raises(PreconditionFailedError, match="invalid role"):
        await control_plane.add_member(OWNER_ID, organization.id, 13, "superuser")

    members = await control_plane.list_members(MEMBER_ID, organization.id)
    assert {member.principal_id for member in members} == {OWNER_ID, ADMIN_ID, MEMBER_ID, 10}


@pytest.mark.asyncio
async def test_update_member_role_requires_owner_and_keeps_an_owner(control_plane) -> None:
    organization = await create_organization(control_plane)

    with pytest.raises(ForbiddenError):
        await control_plane.update_member_role(ADMIN_ID, organization.id, MEMBER_ID, Role.ADMIN)
    promoted = await control_plane.update_member_role(OWNER_ID, organization.id, MEMBER_ID, Role.ADMIN)
    assert promoted.role == Role.ADMIN

    with pytest.raises(PreconditionFailedError, match="at least one owner"):
        await control_plane.update_member_role(OWNER_ID, organization.id, OWNER_ID, Role.ADMIN)
    with pytest.raises(NotFoundError):
        await control_plane.update_member_role(OWNER_ID, organization.id, OUTSIDER_ID, Role.ADMIN)


@pytest.mark.asyncio
async def test_remove_member_guards_last_owner(control_plane, repository) -> None:
    organization = await create_organization(control_plane)

    await control_plane.remove_member(ADMIN_ID, organization.id, MEMBER_ID)
    assert await repository.get_membership(MEMBER_ID, organization.id) is None
    with pytest.raises(ForbiddenError):
        await control_plane.remove_member(ADMIN_ID, organization.id, OWNER_ID)
    with pytest.raises(PreconditionFailedError):
        await control_plane.remove_member(OWNER_ID, organization.id, OWNER_ID)

    actions = await audit_actions(repository, organization.id)
    assert "organization.member.removed" in actions
    assert actions.count("organization.member.added") == 2


@pytest.mark.asyncio
async def test_read_side_hides_deleted_projects(control_plane) -> None:
    organization = await create_organization(control_plane)
    kept = await control_plane.create_project(OWNER_ID, organization.id, "Kept")
    gone = await control_plane.create_project(OWNER_ID, organization.id, "Gone")
    await control_plane.delete_project(OWNER_ID, gone.id)

    listed = await control_plane.list_projects(MEMBER_ID, organization.id)
    assert [project.id for project in listed] == [kept.id]
    # Deleted projects stay readable by id for diagnosis.
    assert (await control_plane.get_project(MEMBER_ID, gone.id)).deleted_at is not None


@pytest.mark.asyncio
async def test_list_audit_entries_is_admin_only_and_filterable(control_plane) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Audited")
    await control_plane.pause_project(OWNER_ID, created.id)

    entries = await control_plane.list_audit_entries(ADMIN_ID, organization.id)
    assert entries[0].action == "project.paused"
    filtered = await control_plane.list_audit_entries(
        ADMIN_ID, organization.id, action="project.created", project_id=created.id
    )
    assert [entry.metadata["slug"] for entry in filtered] == ["audited"]
    with pytest.raises(ForbiddenError):
        await control_plane.list_audit_entries(MEMBER_ID, organization.id)


@pytest.mark.asyncio
async def test_subscription_is_readable_by_members(control_plane) -> None:
    organization = await create_organization(control_plane)
    subscription = await control_plane.get_subscription(MEMBER_ID, organization.id)

    assert subscription.plan_type == PlanType.FREE
    assert subscription.status == SubscriptionStatus.ACTIVE
    with pytest.raises(ForbiddenError):
        await control_plane.get_subscription(OUTSIDER_ID, organization.id)


@pytest.mark.asyncio
async def test_list_plans_returns_the_catalog(control_plane) -> None:
    plans = {plan.plan_type: plan for plan in await control_plane.list_plans()}

    assert set(plans) == {PlanType.FREE, PlanType.PRO, PlanType.ENTERPRISE}
    assert plans[PlanType.FREE].max_projects == 2
    assert plans[PlanType.PRO].max_projects == 10


@pytest.mark.asyncio
async def test_change_plan_raises_project_quota(repository, provisioner) -> None:
    fixed_now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    control_plane = ControlPlane(
        repository=repository, provisioner=provisioner, time_provider=lambda: fixed_now
    )
    organization = await create_organization(control_plane)
    await control_plane.create_project(OWNER_ID, organization.id, "One")
    await control_plane.create_project(OWNER_ID, organization.id, "Two")
    with pytest.raises(PreconditionFailedError, match="project limit reached"):
        await control_plane.create_project(OWNER_ID, organization.id, "Three")

    subscription = await control_plane.change_plan(OWNER_ID, organization.id, "pro")
    assert subscription.plan_type == PlanType.PRO
    assert subscription.current_period_start == fixed_now
    assert subscription.current_period_end == fixed_now + timedelta(days=30)

    await control_plane.create_project(OWNER_ID, organization.id, "Three")
    assert "organization.subscription.updated" in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_change_plan_is_owner_only_and_validated(control_plane) -> None:
    organization = await create_organization(control_plane)

    with pytest.raises(ForbiddenError):
        await control_plane.change_plan(ADMIN_ID, organization.id, PlanType.PRO)
    with pytest.raises(PreconditionFailedError, match="invalid plan"):
        await control_plane.change_plan(OWNER_ID, organization.id, "platinum")
    assert (await control_plane.get_subscription(OWNER_ID, organization.id)).plan_type == PlanType.FREE
