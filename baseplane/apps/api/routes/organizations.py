from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from baseplane.apps.api.deps import Principal, get_control_plane, get_principal
from baseplane.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from baseplane.apps.api.response import SuccessEnvelope, success_response
from baseplane.domain.types import Role
from baseplane.domain.views import MembershipView, OrganizationView
from baseplane.services.control_plane import ControlPlane


router = APIRouter(prefix="/organizations", tags=["organizations"], responses=DEFAULT_ERROR_RESPONSES)


class OrganizationRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class OrganizationResponse(BaseModel):
    id: int
    name: str
    slug: str
    owner_principal_id: int
    org_database: str
    role: Role | None


class MemberAddRequest(BaseModel):
    principal_id: int
    role: Role = Role.MEMBER


class MemberRoleRequest(BaseModel):
    role: Role


class MemberResponse(BaseModel):
    id: int
    organization_id: int
    principal_id: int
    role: Role
    joined_at: str | None


class DeletedResponse(BaseModel):
    id: int
    deleted: bool


def _organization_payload(view: OrganizationView) -> OrganizationResponse:
    return OrganizationResponse(
        id=view.id,
        name=view.name,
        slug=view.slug,
        owner_principal_id=view.owner_principal_id,
        org_database=view.org_database,
        role=view.role,
    )


def _member_payload(view: MembershipView) -> MemberResponse:
    return MemberResponse(
        id=view.id,
        organization_id=view.organization_id,
        principal_id=view.principal_id,
        role=view.role,
        joined_at=view.joined_at.isoformat() if view.joined_at else None,
    )


@router.get("", response_model=SuccessEnvelope[list[OrganizationResponse]])
async def list_organizations(
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    views = await control_plane.list_organizations(principal.principal_id)
    return success_response(request=request, data=[_organization_payload(view) for view in views])


@router.post("", status_code=201, response_model=SuccessEnvelope[OrganizationResponse])
async def create_organization(
    payload: OrganizationRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.create_organization(principal.principal_id, payload.name)
    return success_response(request=request, data=_organization_payload(view))


@router.get("/{organization_id}", response_model=SuccessEnvelope[OrganizationResponse])
async def get_organization(
    organization_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.get_organization(principal.principal_id, organization_id)
    return success_response(request=request, data=_organization_payload(view))


@router.patch("/{organization_id}", response_model=SuccessEnvelope[OrganizationResponse])
async def update_organization(
    organization_id: int,
    payload: OrganizationRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.update_organization(principal.principal_id, organization_id, payload.name)
    return success_response(request=request, data=_organization_payload(view))


@router.delete("/{organization_id}", response_model=SuccessEnvelope[DeletedResponse])
async def delete_organization(
    organization_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    await control_plane.delete_organization(principal.principal_id, organization_id)
    return success_response(request=request, data=DeletedResponse(id=organization_id, deleted=True))


@router.get("/{organization_id}/members", response_model=SuccessEnvelope[list[MemberResponse]])
async def list_members(
    organization_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    views = await control_plane.list_members(principal.principal_id, organization_id)
    return success_response(request=request, data=[_member_payload(view) for view in views])


@router.post(
    "/{organization_id}/members",
    status_code=201,
    response_model=SuccessEnvelope[MemberResponse],
)
async def add_member(
    organization_id: int,
    payload: MemberAddRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.add_member(
        principal.principal_id, organization_id, payload.principal_id, payload.role
    )
    return success_response(request=request, data=_member_payload(view))


@router.patch(
    "/{organization_id}/members/{member_principal_id}",
    response_model=SuccessEnvelope[MemberResponse],
)
async def update_member_role(
    organization_id: int,
    member_principal_id: int,
    payload: MemberRoleRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.update_member_role(
        principal.principal_id, organization_id, member_principal_id, payload.role
    )
    return success_response(request=request, data=_member_payload(view))


@router.delete(
    "/{organization_id}/members/{member_principal_id}",
    response_model=SuccessEnvelope[DeletedResponse],
)
async def remove_member(
    organization_id: int,
    member_principal_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    await control_plane.remove_member(principal.principal_id, organization_id, member_principal_id)
    return success_response(
        request=request, data=DeletedResponse(id=member_principal_id, deleted=True)
    )
