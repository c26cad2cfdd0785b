from __future__ import annotations

from typing import Any

from baseplane.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str) -> dict[str, Any]:
    return {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }


def _error_response(description: str, code: str, message: str) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": _error_example(code=code, message=message)}},
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: _error_response("Unauthorized", "AUTH_UNAUTHORIZED", "Missing X-Principal-Id header"),
    403: _error_response("Forbidden", "AUTH_FORBIDDEN", "insufficient role"),
    404: _error_response("Not found", "NOT_FOUND", "project not found"),
    409: _error_response("Conflict", "CONFLICT", "project with this name already exists"),
    412: _error_response("Precondition failed", "PRECONDITION_FAILED", "project limit reached"),
    422: _error_response("Validation error", "REQUEST_VALIDATION_ERROR", "Validation error"),
    500: _error_response("Internal error", "INTERNAL_ERROR", "failed to provision project infrastructure"),
}
