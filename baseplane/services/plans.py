from __future__ import annotations

import logging
from typing import Any

from baseplane.domain.types import PlanType
from baseplane.persistence.repository import TenantRepository


logger = logging.getLogger(__name__)


# Reference plan catalog; quotas read max_projects, the other ceilings are informational.
DEFAULT_PLAN_LIMITS: dict[PlanType, dict[str, Any]] = {
    PlanType.FREE: {
        "max_projects": 2,
        "max_database_size_mb": 500,
        "max_storage_gb": 1,
        "max_bandwidth_gb": 2,
        "max_api_calls_per_month": 50_000,
        "max_edge_functions": 10,
        "max_realtime_connections": 200,
        "custom_domain": False,
        "priority_support": False,
    },
    PlanType.PRO: {
        "max_projects": 10,
        "max_database_size_mb": 8_000,
        "max_storage_gb": 100,
        "max_bandwidth_gb": 250,
        "max_api_calls_per_month": 5_000_000,
        "max_edge_functions": 100,
        "max_realtime_connections": 5_000,
        "custom_domain": True,
        "priority_support": True,
    },
    PlanType.ENTERPRISE: {
        "max_projects": 100,
        "max_database_size_mb": 100_000,
        "max_storage_gb": 1_000,
        "max_bandwidth_gb": 5_000,
        "max_api_calls_per_month": 100_000_000,
        "max_edge_functions": 1_000,
        "max_realtime_connections": 50_000,
        "custom_domain": True,
        "priority_support": True,
    },
}


async def seed_plan_limits(
    repository: TenantRepository,
    overrides: dict[PlanType, dict[str, Any]] | None = None,
) -> list[PlanType]:
    """Upsert the plan catalog and commit; returns the plans written."""
    catalog = {plan: dict(values) for plan, values in DEFAULT_PLAN_LIMITS.items()}
    for plan, values in (overrides or {}).items():
        catalog.setdefault(plan, {}).update(values)
    for plan, values in catalog.items():
        await repository.upsert_plan_limit(plan, **values)
        logger.info("plan_limits_seeded plan_type=%s max_projects=%s", plan.value, values["max_projects"])
    await repository.commit()
    return list(catalog)
