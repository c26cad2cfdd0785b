from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

from baseplane.core.config import get_settings
from baseplane.domain.types import ProjectStatus
from baseplane.domain.views import ProjectView
from baseplane.persistence.repository import TenantRepository


logger = logging.getLogger(__name__)

TRANSITIONAL_STATUSES = (ProjectStatus.PROVISIONING, ProjectStatus.DELETING)


async def find_stuck_projects(
    repository: TenantRepository,
    older_than: timedelta | None = None,
    *,
    now: datetime | None = None,
) -> list[ProjectView]:
    """Report projects left in a transitional status past the threshold.

    A crash between the transitional commit and the compensating write leaves rows
    in ``provisioning`` or ``deleting``; this only lists them for an operator.
    """
    if older_than is None:
        older_than = timedelta(minutes=get_settings().stuck_project_threshold_minutes)
    cutoff = (now or datetime.now(timezone.utc)) - older_than
    projects = await repository.list_projects_in_status(TRANSITIONAL_STATUSES, updated_before=cutoff)
    if projects:
        logger.warning("stuck_projects_found count=%s cutoff=%s", len(projects), cutoff.isoformat())
    return [ProjectView.from_model(row) for row in projects]
