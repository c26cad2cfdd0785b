from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    INTERNAL = "internal"


class BaseplaneError(Exception):
    """Base error for Baseplane operations; carries a kind and a caller-safe message."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ForbiddenError(BaseplaneError):
    """Principal has no membership or an insufficient role."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(BaseplaneError):
    """Referenced organization, project or credential does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(BaseplaneError):
    """Slug or membership collision."""

    kind = ErrorKind.CONFLICT


class PreconditionFailedError(BaseplaneError):
    """Quota exceeded, missing subscription or illegal state transition."""

    kind = ErrorKind.PRECONDITION_FAILED


class InternalError(BaseplaneError):
    """Infrastructure failure or deployment misconfiguration."""

    kind = ErrorKind.INTERNAL


class ProvisioningError(Exception):
    """Infrastructure provisioner failure; never surfaced to callers directly."""


class InvalidTokenError(BaseplaneError):
    """Project API token failed signature or claim validation."""

    kind = ErrorKind.FORBIDDEN


class DuplicateRecordError(Exception):
    """Unique constraint violation raised by the repository layer."""
