from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from baseplane.apps.api.deps import Principal, get_control_plane, get_principal
from baseplane.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from baseplane.apps.api.response import SuccessEnvelope, success_response
from baseplane.domain.views import AuditEntryView
from baseplane.services.control_plane import ControlPlane


router = APIRouter(tags=["audit"], responses=DEFAULT_ERROR_RESPONSES)


class AuditEntryResponse(BaseModel):
    id: int
    principal_id: int | None
    organization_id: int | None
    project_id: int | None
    action: str
    resource_type: str
    resource_id: int | None
    metadata: dict[str, Any]
    occurred_at: str


def _to_payload(view: AuditEntryView) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=view.id,
        principal_id=view.principal_id,
        organization_id=view.organization_id,
        project_id=view.project_id,
        action=view.action,
        resource_type=view.resource_type,
        resource_id=view.resource_id,
        metadata=view.metadata,
        occurred_at=view.occurred_at.isoformat(),
    )


@router.get(
    "/organizations/{organization_id}/audit",
    response_model=SuccessEnvelope[list[AuditEntryResponse]],
)
async def list_audit_entries(
    organization_id: int,
    request: Request,
    action: str | None = Query(default=None),
    project_id: int | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    # Newest first; admins only, scoped to the one organization.
    views = await control_plane.list_audit_entries(
        principal.principal_id,
        organization_id,
        action=action,
        project_id=project_id,
        offset=offset,
        limit=limit,
    )
    return success_response(request=request, data=[_to_payload(view) for view in views])
