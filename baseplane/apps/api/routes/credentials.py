from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from baseplane.apps.api.deps import Principal, get_control_plane, get_principal
from baseplane.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from baseplane.apps.api.response import SuccessEnvelope, success_response
from baseplane.services.control_plane import ControlPlane


router = APIRouter(
    prefix="/projects/{project_id}/credentials",
    tags=["credentials"],
    responses=DEFAULT_ERROR_RESPONSES,
)


class CredentialResponse(BaseModel):
    project_id: int
    signing_secret: str
    anon_token: str
    service_token: str
    storage_bucket: str
    connection_descriptor: str | None


class ApiKeysResponse(BaseModel):
    anon_token: str
    service_token: str


class SigningSecretResponse(BaseModel):
    signing_secret: str
    anon_token: str
    service_token: str


@router.get("", response_model=SuccessEnvelope[CredentialResponse])
async def get_credentials(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.get_credentials(principal.principal_id, project_id)
    payload = CredentialResponse(
        project_id=view.project_id,
        signing_secret=view.signing_secret,
        anon_token=view.anon_token,
        service_token=view.service_token,
        storage_bucket=view.storage_bucket,
        connection_descriptor=view.connection_descriptor,
    )
    return success_response(request=request, data=payload)


@router.post("/regenerate-keys", response_model=SuccessEnvelope[ApiKeysResponse])
async def regenerate_api_keys(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    # The signing secret is unchanged, so previously issued tokens keep verifying.
    tokens = await control_plane.regenerate_api_keys(principal.principal_id, project_id)
    payload = ApiKeysResponse(anon_token=tokens.anon_token, service_token=tokens.service_token)
    return success_response(request=request, data=payload)


@router.post("/regenerate-secret", response_model=SuccessEnvelope[SigningSecretResponse])
async def regenerate_signing_secret(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    rotated = await control_plane.regenerate_signing_secret(principal.principal_id, project_id)
    payload = SigningSecretResponse(
        signing_secret=rotated.signing_secret,
        anon_token=rotated.anon_token,
        service_token=rotated.service_token,
    )
    return success_response(request=request, data=payload)
