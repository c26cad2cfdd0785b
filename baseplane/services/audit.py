from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from baseplane.domain.models import AuditLogEntry
from baseplane.persistence.repository import TenantRepository


logger = logging.getLogger(__name__)

_SENSITIVE_KEY_PATTERNS = ["secret", "token", "password", "authorization", "api_key", "connection"]
_REDACTED_VALUE = "[REDACTED]"


def _is_sensitive_key(key: str) -> bool:
    # Match sensitive key fragments case-insensitively to enforce redaction policy.
    lowered = key.lower()
    return any(pattern in lowered for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_metadata(value: Any) -> Any:
    # Recursively scrub credential material while preserving safe structure.
    if isinstance(value, dict):
        sanitized: dict[str, Any] = {}
        for raw_key, raw_value in value.items():
            key = str(raw_key)
            if _is_sensitive_key(key):
                sanitized[key] = _REDACTED_VALUE
            else:
                sanitized[key] = sanitize_metadata(raw_value)
        return sanitized
    if isinstance(value, list):
        return [sanitize_metadata(item) for item in value]
    return value


class AuditRecorder:
    """Appends immutable audit entries after a state change has committed.

    Recording is best-effort observability: a failed write is logged and swallowed
    so it can never roll back or fail the operation being audited.
    """

    def __init__(self, repository: TenantRepository) -> None:
        self._repository = repository

    async def record(
        self,
        *,
        principal_id: int | None,
        action: str,
        resource_type: str,
        resource_id: int | None,
        organization_id: int | None = None,
        project_id: int | None = None,
        metadata: dict[str, Any] | None = None,
        occurred_at: datetime | None = None,
    ) -> bool:
        entry = AuditLogEntry(
            principal_id=principal_id,
            organization_id=organization_id,
            project_id=project_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            metadata_json=sanitize_metadata(metadata or {}),
            occurred_at=occurred_at or datetime.now(timezone.utc),
        )
        try:
            await self._repository.append_audit_entry(entry)
            await self._repository.commit()
        except SQLAlchemyError as exc:
            await self._repository.rollback()
            logger.warning(
                "audit_entry_write_failed action=%s resource_type=%s resource_id=%s",
                action,
                resource_type,
                resource_id,
                exc_info=exc,
            )
            return False
        return True
