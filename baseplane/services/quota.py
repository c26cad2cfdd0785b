from __future__ import annotations

from dataclasses import dataclass
import logging

from baseplane.core.errors import InternalError, PreconditionFailedError
from baseplane.domain.types import UNLIMITED, PlanType, SubscriptionStatus
from baseplane.persistence.repository import TenantRepository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaSnapshot:
    # Capture the plan ceiling and current usage; limit None means unlimited.
    plan_type: PlanType
    limit: int | None
    used: int

    @property
    def remaining(self) -> int | None:
        if self.limit is None:
            return None
        return max(self.limit - self.used, 0)


class QuotaEnforcer:
    """Plan-limit checks evaluated before any project resource is reserved."""

    def __init__(self, repository: TenantRepository) -> None:
        self._repository = repository

    async def check_can_create_project(self, organization_id: int) -> QuotaSnapshot:
        subscription = await self._repository.get_subscription(organization_id)
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
            raise PreconditionFailedError("no active subscription")

        plan = await self._repository.get_plan_limit(subscription.plan_type)
        if plan is None:
            # Missing reference data is a deployment bug, not a user error.
            logger.error("plan_limits_missing plan_type=%s", subscription.plan_type.value)
            raise InternalError("plan limits not configured")

        used = await self._repository.count_active_projects(organization_id)
        if plan.max_projects == UNLIMITED:
            return QuotaSnapshot(plan_type=plan.plan_type, limit=None, used=used)

        snapshot = QuotaSnapshot(plan_type=plan.plan_type, limit=plan.max_projects, used=used)
        if used >= plan.max_projects:
            logger.info(
                "project_limit_reached organization_id=%s plan_type=%s used=%s limit=%s",
                organization_id,
                plan.plan_type.value,
                used,
                plan.max_projects,
            )
            raise PreconditionFailedError("project limit reached")
        return snapshot
