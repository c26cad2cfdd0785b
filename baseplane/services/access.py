from __future__ import annotations

import logging

from baseplane.core.errors import ForbiddenError, NotFoundError
from baseplane.domain.models import Project
from baseplane.domain.types import Role, role_rank
from baseplane.persistence.repository import TenantRepository


logger = logging.getLogger(__name__)


def role_allows(*, role: Role, minimum_role: Role) -> bool:
    # Compare roles by rank for least-privilege enforcement.
    return role_rank(role) >= role_rank(minimum_role)


def normalize_role(role: str | Role) -> Role:
    # Enforce the closed role vocabulary at the boundary.
    if isinstance(role, Role):
        return role
    try:
        return Role(role.strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported role: {role}") from exc


class AccessControl:
    """Role checks gating every mutation; reads repository state and never writes."""

    def __init__(self, repository: TenantRepository) -> None:
        self._repository = repository

    async def check_role(self, principal_id: int, organization_id: int, minimum_role: Role) -> Role:
        membership = await self._repository.get_membership(principal_id, organization_id)
        if membership is None:
            logger.info(
                "access_denied reason=no_membership principal_id=%s organization_id=%s",
                principal_id,
                organization_id,
            )
            raise ForbiddenError("no access")
        if not role_allows(role=membership.role, minimum_role=minimum_role):
            logger.info(
                "access_denied reason=insufficient_role principal_id=%s organization_id=%s role=%s required=%s",
                principal_id,
                organization_id,
                membership.role.value,
                minimum_role.value,
            )
            raise ForbiddenError("insufficient role")
        return membership.role

    async def check_project_role(
        self, principal_id: int, project_id: int, minimum_role: Role
    ) -> tuple[Project, Role]:
        # Resolve the owning organization first; a missing project is NotFound, not Forbidden.
        project = await self._repository.get_project(project_id)
        if project is None:
            raise NotFoundError("project not found")
        role = await self.check_role(principal_id, project.organization_id, minimum_role)
        return project, role
