from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from baseplane.apps.api.errors import (
    baseplane_error_handler,
    http_exception_handler,
    starlette_http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from baseplane.apps.api.response import API_VERSION, REQUEST_ID_HEADER, resolve_request_id
from baseplane.apps.api.routes.audit import router as audit_router
from baseplane.apps.api.routes.billing import router as billing_router
from baseplane.apps.api.routes.credentials import router as credentials_router
from baseplane.apps.api.routes.health import router as health_router
from baseplane.apps.api.routes.organizations import router as organizations_router
from baseplane.apps.api.routes.projects import router as projects_router
from baseplane.core.config import get_settings
from baseplane.core.errors import BaseplaneError
from baseplane.core.logging import configure_logging, principal_id_var, request_id_var
from baseplane.persistence.db import Database
from baseplane.providers.infrastructure.base import InfrastructureProvisioner
from baseplane.providers.infrastructure.factory import get_provisioner


def create_app(
    *,
    database: Database | None = None,
    provisioner: InfrastructureProvisioner | None = None,
) -> FastAPI:
    configure_logging()
    owns_database = database is None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        # Injected databases belong to the caller (tests, scripts); only dispose our own.
        if owns_database:
            await app.state.database.dispose()

    app = FastAPI(title=f"{get_settings().app_name} control plane", lifespan=lifespan)
    # Engine creation is lazy, so building it here never opens a connection.
    app.state.database = database or Database()
    app.state.provisioner = provisioner or get_provisioner()

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        request_id = resolve_request_id(request)
        request_token = request_id_var.set(request_id)
        principal_token = principal_id_var.set("")
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(request_token)
            principal_id_var.reset(principal_token)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response

    @app.exception_handler(BaseplaneError)
    async def _baseplane_error_handler(request: Request, exc: BaseplaneError):
        return await baseplane_error_handler(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await starlette_http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return await http_exception_handler(request, exc)

    # Mount versioned v1 API routes.
    app.include_router(health_router, prefix=f"/{API_VERSION}")
    app.include_router(organizations_router, prefix=f"/{API_VERSION}")
    app.include_router(projects_router, prefix=f"/{API_VERSION}")
    app.include_router(credentials_router, prefix=f"/{API_VERSION}")
    app.include_router(audit_router, prefix=f"/{API_VERSION}")
    app.include_router(billing_router, prefix=f"/{API_VERSION}")
    # Unversioned liveness probe for load balancers.
    app.include_router(health_router, include_in_schema=False)
    return app
