from __future__ import annotations

import pytest

from baseplane.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    PreconditionFailedError,
)
from baseplane.domain.types import ProjectStatus
from baseplane.persistence.repository import TenantRepository
from baseplane.providers.infrastructure.fake import FakeProvisioner
from baseplane.services.audit import AuditRecorder
from baseplane.services.control_plane import ControlPlane
from baseplane.services.lifecycle import ProjectStateError
from baseplane.tests.utils.tenants import (
    ADMIN_ID,
    MEMBER_ID,
    OWNER_ID,
    FailingAuditRepository,
    FailingCredentialsRepository,
    SlugBlindRepository,
    audit_actions,
    create_organization,
)


@pytest.mark.asyncio
async def test_create_project_provisions_and_activates(control_plane, repository, provisioner) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(ADMIN_ID, organization.id, "My App")

    assert created.slug == "my-app"
    project = await repository.get_project(created.id)
    assert project.status == ProjectStatus.ACTIVE
    assert project.region == "us-west-1"
    assert project.database_name == organization.org_database
    assert project.database_schema == "project_my_app"
    assert project.database_host == "localhost"

    credentials = await repository.get_credentials(created.id)
    assert credentials.anon_token
    assert credentials.service_token
    assert credentials.storage_bucket == "project-my-app"
    assert provisioner.calls == [("provision", "my-app")]
    assert "project.created" in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_create_project_honours_explicit_region(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "EU App", region="eu-central-1")
    assert (await repository.get_project(created.id)).region == "eu-central-1"


@pytest.mark.asyncio
async def test_create_project_requires_admin(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    with pytest.raises(ForbiddenError):
        await control_plane.create_project(MEMBER_ID, organization.id, "Nope")
    assert await repository.get_project_by_slug("nope") is None


@pytest.mark.asyncio
async def test_create_project_rejects_unsluggable_name(control_plane) -> None:
    organization = await create_organization(control_plane)
    with pytest.raises(PreconditionFailedError, match="invalid project name"):
        await control_plane.create_project(OWNER_ID, organization.id, "!!!")


@pytest.mark.asyncio
async def test_slug_is_globally_unique(control_plane, provisioner) -> None:
    acme = await create_organization(control_plane, name="Acme")
    globex = await create_organization(control_plane, name="Globex")
    await control_plane.create_project(OWNER_ID, acme.id, "My App")

    with pytest.raises(ConflictError):
        await control_plane.create_project(OWNER_ID, acme.id, "my app")
    with pytest.raises(ConflictError):
        await control_plane.create_project(OWNER_ID, globex.id, "My--App")
    assert provisioner.calls == [("provision", "my-app")]


@pytest.mark.asyncio
async def test_quota_is_checked_before_slug_conflicts(control_plane) -> None:
    organization = await create_organization(control_plane)
    await control_plane.create_project(OWNER_ID, organization.id, "One")
    await control_plane.create_project(OWNER_ID, organization.id, "Two")
    with pytest.raises(PreconditionFailedError, match="project limit reached"):
        await control_plane.create_project(OWNER_ID, organization.id, "One")


@pytest.mark.asyncio
async def test_provisioning_failure_rolls_back_to_deleted(repository) -> None:
    control_plane = ControlPlane(repository=repository, provisioner=FakeProvisioner(fail_on={"provision"}))
    organization = await create_organization(control_plane)

    with pytest.raises(InternalError, match="failed to provision project infrastructure"):
        await control_plane.create_project(OWNER_ID, organization.id, "Doomed")

    project = await repository.get_project_by_slug("doomed")
    assert project.status == ProjectStatus.DELETED
    assert project.deleted_at is not None
    assert await repository.get_credentials(project.id) is None
    actions = await audit_actions(repository, organization.id)
    assert "project.created" not in actions
    assert "project.provisioning_failed" in actions


@pytest.mark.asyncio
async def test_failed_provisioning_frees_quota(repository) -> None:
    provisioner = FakeProvisioner(fail_on={"provision"})
    control_plane = ControlPlane(repository=repository, provisioner=provisioner)
    organization = await create_organization(control_plane)
    with pytest.raises(InternalError):
        await control_plane.create_project(OWNER_ID, organization.id, "Doomed")

    provisioner.fail_on.clear()
    await control_plane.create_project(OWNER_ID, organization.id, "One")
    await control_plane.create_project(OWNER_ID, organization.id, "Two")


@pytest.mark.asyncio
async def test_pause_and_resume_toggle_status(control_plane, repository, provisioner) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Toggle")

    paused = await control_plane.pause_project(ADMIN_ID, created.id)
    assert paused.status == ProjectStatus.PAUSED
    assert paused.paused_at is not None

    resumed = await control_plane.resume_project(ADMIN_ID, created.id)
    assert resumed.status == ProjectStatus.ACTIVE
    assert resumed.paused_at is None

    assert ("pause", "toggle") in provisioner.calls
    assert ("resume", "toggle") in provisioner.calls
    actions = await audit_actions(repository, organization.id)
    assert "project.paused" in actions
    assert "project.resumed" in actions


@pytest.mark.asyncio
async def test_pause_and_resume_reject_illegal_states(control_plane) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Strict")

    with pytest.raises(ProjectStateError, match="project is not paused"):
        await control_plane.resume_project(OWNER_ID, created.id)
    await control_plane.pause_project(OWNER_ID, created.id)
    with pytest.raises(PreconditionFailedError, match="project is not active"):
        await control_plane.pause_project(OWNER_ID, created.id)


@pytest.mark.asyncio
async def test_pause_hook_failure_leaves_status_unchanged(repository) -> None:
    control_plane = ControlPlane(repository=repository, provisioner=FakeProvisioner(fail_on={"pause"}))
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Sticky")

    with pytest.raises(InternalError, match="failed to pause project"):
        await control_plane.pause_project(OWNER_ID, created.id)
    assert (await repository.get_project(created.id)).status == ProjectStatus.ACTIVE


@pytest.mark.asyncio
async def test_pause_requires_admin(control_plane) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Guarded")
    with pytest.raises(ForbiddenError):
        await control_plane.pause_project(MEMBER_ID, created.id)


@pytest.mark.asyncio
async def test_unknown_project_is_not_found(control_plane) -> None:
    with pytest.raises(NotFoundError):
        await control_plane.pause_project(OWNER_ID, 999)


@pytest.mark.asyncio
async def test_delete_project_removes_credentials(control_plane, repository, provisioner) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Gone")

    deleted = await control_plane.delete_project(OWNER_ID, created.id)
    assert deleted.status == ProjectStatus.DELETED
    assert deleted.deleted_at is not None
    assert await repository.get_credentials(created.id) is None
    assert ("deprovision", "gone") in provisioner.calls
    assert "project.deleted" in await audit_actions(repository, organization.id)

    with pytest.raises(PreconditionFailedError):
        await control_plane.delete_project(OWNER_ID, created.id)


@pytest.mark.asyncio
async def test_paused_project_can_be_deleted(control_plane) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Paused Then Gone")
    await control_plane.pause_project(OWNER_ID, created.id)
    assert (await control_plane.delete_project(OWNER_ID, created.id)).status == ProjectStatus.DELETED


@pytest.mark.asyncio
async def test_deprovision_failure_restores_active(repository) -> None:
    provisioner = FakeProvisioner(fail_on={"deprovision"})
    control_plane = ControlPlane(repository=repository, provisioner=provisioner)
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Clingy")

    with pytest.raises(InternalError, match="failed to delete project"):
        await control_plane.delete_project(OWNER_ID, created.id)

    project = await repository.get_project(created.id)
    assert project.status == ProjectStatus.ACTIVE
    assert await repository.get_credentials(created.id) is not None
    assert "project.deleted" not in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_audit_failure_does_not_change_outcome(control_plane, repository, session) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Quiet")

    failing = FailingAuditRepository(session)
    quiet_plane = ControlPlane(
        repository=repository,
        provisioner=FakeProvisioner(),
        audit=AuditRecorder(failing),
    )
    paused = await quiet_plane.pause_project(OWNER_ID, created.id)

    assert paused.status == ProjectStatus.PAUSED
    assert (await repository.get_project(created.id)).status == ProjectStatus.PAUSED
    assert "project.paused" not in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_failure_after_provision_releases_infrastructure(session, repository) -> None:
    provisioner = FakeProvisioner()
    control_plane = ControlPlane(repository=FailingCredentialsRepository(session), provisioner=provisioner)
    organization = await create_organization(control_plane)

    with pytest.raises(InternalError, match="failed to provision project infrastructure"):
        await control_plane.create_project(OWNER_ID, organization.id, "Orphan")

    assert provisioner.calls == [("provision", "orphan"), ("deprovision", "orphan")]
    project = await repository.get_project_by_slug("orphan")
    assert project.status == ProjectStatus.DELETED
    assert await repository.get_credentials(project.id) is None


@pytest.mark.asyncio
async def test_failed_release_still_lands_deleted(session, repository) -> None:
    provisioner = FakeProvisioner(fail_on={"deprovision"})
    control_plane = ControlPlane(repository=FailingCredentialsRepository(session), provisioner=provisioner)
    organization = await create_organization(control_plane)

    with pytest.raises(InternalError, match="failed to provision project infrastructure"):
        await control_plane.create_project(OWNER_ID, organization.id, "Orphan")

    assert ("deprovision", "orphan") in provisioner.calls
    assert (await repository.get_project_by_slug("orphan")).status == ProjectStatus.DELETED
    assert "project.provisioning_failed" in await audit_actions(repository, organization.id)


@pytest.mark.asyncio
async def test_provision_failure_skips_deprovision(repository) -> None:
    provisioner = FakeProvisioner(fail_on={"provision"})
    control_plane = ControlPlane(repository=repository, provisioner=provisioner)
    organization = await create_organization(control_plane)

    with pytest.raises(InternalError):
        await control_plane.create_project(OWNER_ID, organization.id, "Never Built")
    assert provisioner.calls == [("provision", "never-built")]


@pytest.mark.asyncio
async def test_racing_create_maps_unique_violation_to_conflict(session, control_plane, provisioner) -> None:
    organization = await create_organization(control_plane)
    await control_plane.create_project(OWNER_ID, organization.id, "Taken")

    racing_plane = ControlPlane(repository=SlugBlindRepository(session), provisioner=provisioner)
    with pytest.raises(ConflictError, match="project with this name already exists"):
        await racing_plane.create_project(OWNER_ID, organization.id, "taken")
    assert provisioner.calls == [("provision", "taken")]


@pytest.mark.asyncio
async def test_stale_project_write_is_a_conflict(database) -> None:
    async with database.session() as session_a, database.session() as session_b:
        repository_a = TenantRepository(session_a)
        plane_a = ControlPlane(repository=repository_a, provisioner=FakeProvisioner())
        organization = await create_organization(plane_a)
        created = await plane_a.create_project(OWNER_ID, organization.id, "Contested")
        # Session A keeps its loaded copy while session B moves the row on.
        stale = await repository_a.get_project(created.id)

        plane_b = ControlPlane(repository=TenantRepository(session_b), provisioner=FakeProvisioner())
        await plane_b.pause_project(OWNER_ID, created.id)

        with pytest.raises(ConflictError, match="project was modified concurrently"):
            await plane_a.delete_project(OWNER_ID, created.id)
        assert stale is not None

    async with database.session() as session_c:
        project = await TenantRepository(session_c).get_project(created.id)
        assert project.status == ProjectStatus.PAUSED
