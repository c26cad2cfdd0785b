from __future__ import annotations

from typing import Any, Generic, TypeVar
from uuid import uuid4

from fastapi import Request
from pydantic import BaseModel

from baseplane.core.logging import request_id_var


API_VERSION = "v1"
REQUEST_ID_HEADER = "X-Request-Id"

DataT = TypeVar("DataT")


class EnvelopeMeta(BaseModel):
    request_id: str
    api_version: str = API_VERSION


class ErrorBody(BaseModel):
    # code is a stable machine token (e.g. PRECONDITION_FAILED); message is the service's text.
    code: str
    message: str
    details: dict[str, Any] | None = None


class SuccessEnvelope(BaseModel, Generic[DataT]):
    data: DataT
    meta: EnvelopeMeta


class ErrorEnvelope(BaseModel):
    error: ErrorBody
    meta: EnvelopeMeta


def resolve_request_id(request: Request) -> str:
    """Return the caller's X-Request-Id, or mint one, and pin it on the request."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id
    return request_id


def get_request_id(request: Request) -> str:
    # Middleware pins the id first; handlers raised before it ran still get one.
    pinned = getattr(request.state, "request_id", None) or request_id_var.get()
    return pinned or resolve_request_id(request)


def _meta(request: Request) -> dict[str, Any]:
    return EnvelopeMeta(request_id=get_request_id(request)).model_dump()


def success_response(*, request: Request, data: Any) -> dict[str, Any]:
    return {"data": data, "meta": _meta(request)}


def error_response(
    *,
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    body = ErrorBody(code=code, message=message, details=details)
    return {"error": body.model_dump(exclude_none=True), "meta": _meta(request)}
