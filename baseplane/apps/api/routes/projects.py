from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from baseplane.apps.api.deps import Principal, get_control_plane, get_principal
from baseplane.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from baseplane.apps.api.response import SuccessEnvelope, success_response
from baseplane.domain.types import ProjectStatus
from baseplane.domain.views import ProjectView
from baseplane.services.control_plane import ControlPlane


router = APIRouter(tags=["projects"], responses=DEFAULT_ERROR_RESPONSES)


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    region: str | None = Field(default=None, max_length=50)


class ProjectCreatedResponse(BaseModel):
    id: int
    slug: str


class ProjectResponse(BaseModel):
    id: int
    name: str
    slug: str
    organization_id: int
    region: str
    status: ProjectStatus
    database_name: str
    database_schema: str
    database_host: str | None
    database_port: int | None
    paused_at: str | None
    deleted_at: str | None


def _project_payload(view: ProjectView) -> ProjectResponse:
    return ProjectResponse(
        id=view.id,
        name=view.name,
        slug=view.slug,
        organization_id=view.organization_id,
        region=view.region,
        status=view.status,
        database_name=view.database_name,
        database_schema=view.database_schema,
        database_host=view.database_host,
        database_port=view.database_port,
        paused_at=view.paused_at.isoformat() if view.paused_at else None,
        deleted_at=view.deleted_at.isoformat() if view.deleted_at else None,
    )


@router.get(
    "/organizations/{organization_id}/projects",
    response_model=SuccessEnvelope[list[ProjectResponse]],
)
async def list_projects(
    organization_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    views = await control_plane.list_projects(principal.principal_id, organization_id)
    return success_response(request=request, data=[_project_payload(view) for view in views])


@router.post(
    "/organizations/{organization_id}/projects",
    status_code=201,
    response_model=SuccessEnvelope[ProjectCreatedResponse],
)
async def create_project(
    organization_id: int,
    payload: ProjectCreateRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    created = await control_plane.create_project(
        principal.principal_id, organization_id, payload.name, payload.region
    )
    return success_response(
        request=request, data=ProjectCreatedResponse(id=created.id, slug=created.slug)
    )


@router.get("/projects/{project_id}", response_model=SuccessEnvelope[ProjectResponse])
async def get_project(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.get_project(principal.principal_id, project_id)
    return success_response(request=request, data=_project_payload(view))


@router.post("/projects/{project_id}/pause", response_model=SuccessEnvelope[ProjectResponse])
async def pause_project(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.pause_project(principal.principal_id, project_id)
    return success_response(request=request, data=_project_payload(view))


@router.post("/projects/{project_id}/resume", response_model=SuccessEnvelope[ProjectResponse])
async def resume_project(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.resume_project(principal.principal_id, project_id)
    return success_response(request=request, data=_project_payload(view))


@router.delete("/projects/{project_id}", response_model=SuccessEnvelope[ProjectResponse])
async def delete_project(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.delete_project(principal.principal_id, project_id)
    return success_response(request=request, data=_project_payload(view))
