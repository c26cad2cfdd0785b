from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from baseplane.core.logging import principal_id_var
from baseplane.persistence.db import Database
from baseplane.persistence.repository import TenantRepository
from baseplane.providers.infrastructure.base import InfrastructureProvisioner
from baseplane.services.control_plane import ControlPlane


class Principal(BaseModel):
    # Identity asserted by the upstream gateway; authentication happens before this service.
    principal_id: int


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
    )


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_provisioner(request: Request) -> InfrastructureProvisioner:
    return request.app.state.provisioner


async def get_db(database: Database = Depends(get_database)) -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with database.session() as session:
        yield session


async def get_principal(x_principal_id: str | None = Header(default=None)) -> Principal:
    if not x_principal_id:
        raise _auth_error("Missing X-Principal-Id header")
    try:
        principal_id = int(x_principal_id)
    except ValueError as exc:
        raise _auth_error("Invalid X-Principal-Id header") from exc
    principal_id_var.set(str(principal_id))
    return Principal(principal_id=principal_id)


async def get_control_plane(
    session: AsyncSession = Depends(get_db),
    provisioner: InfrastructureProvisioner = Depends(get_provisioner),
) -> ControlPlane:
    return ControlPlane(repository=TenantRepository(session), provisioner=provisioner)
