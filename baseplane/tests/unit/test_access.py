from __future__ import annotations

import pytest

from baseplane.core.errors import ForbiddenError, NotFoundError
from baseplane.domain.types import Role
from baseplane.services.access import AccessControl
from baseplane.tests.utils.tenants import (
    ADMIN_ID,
    MEMBER_ID,
    OUTSIDER_ID,
    OWNER_ID,
    create_organization,
)


@pytest.mark.asyncio
async def test_check_role_returns_the_members_role(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    access = AccessControl(repository)

    assert await access.check_role(OWNER_ID, organization.id, Role.ADMIN) == Role.OWNER
    assert await access.check_role(ADMIN_ID, organization.id, Role.ADMIN) == Role.ADMIN
    assert await access.check_role(MEMBER_ID, organization.id, Role.MEMBER) == Role.MEMBER


@pytest.mark.asyncio
async def test_check_role_rejects_non_members(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    with pytest.raises(ForbiddenError, match="no access"):
        await AccessControl(repository).check_role(OUTSIDER_ID, organization.id, Role.MEMBER)


@pytest.mark.asyncio
async def test_check_role_rejects_insufficient_role(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    with pytest.raises(ForbiddenError, match="insufficient role"):
        await AccessControl(repository).check_role(MEMBER_ID, organization.id, Role.ADMIN)
    with pytest.raises(ForbiddenError, match="insufficient role"):
        await AccessControl(repository).check_role(ADMIN_ID, organization.id, Role.OWNER)


@pytest.mark.asyncio
async def test_check_project_role_reports_missing_project(repository) -> None:
    with pytest.raises(NotFoundError, match="project not found"):
        await AccessControl(repository).check_project_role(OWNER_ID, 12345, Role.MEMBER)


@pytest.mark.asyncio
async def test_check_project_role_resolves_owning_organization(control_plane, repository) -> None:
    organization = await create_organization(control_plane)
    created = await control_plane.create_project(OWNER_ID, organization.id, "Access App")

    project, role = await AccessControl(repository).check_project_role(MEMBER_ID, created.id, Role.MEMBER)
    assert project.id == created.id
    assert role == Role.MEMBER
    with pytest.raises(ForbiddenError):
        await AccessControl(repository).check_project_role(OUTSIDER_ID, created.id, Role.MEMBER)
