from __future__ import annotations

import logging

from baseplane.core.errors import NotFoundError
from baseplane.domain.models import ProjectCredential
from baseplane.domain.types import Role
from baseplane.domain.views import CredentialView
from baseplane.persistence.repository import TenantRepository
from baseplane.services.access import AccessControl
from baseplane.services.audit import AuditRecorder
from baseplane.services.credentials import CredentialIssuer, RotatedCredentials, TokenPair


logger = logging.getLogger(__name__)

RESOURCE_CREDENTIALS = "project_credentials"


class CredentialRotation:
    """Operator-facing reads and rotations of a project's stored credentials."""

    def __init__(
        self,
        *,
        repository: TenantRepository,
        issuer: CredentialIssuer,
        audit: AuditRecorder,
        access: AccessControl | None = None,
    ) -> None:
        self._repository = repository
        self._issuer = issuer
        self._audit = audit
        self._access = access or AccessControl(repository)

    async def get_credentials(self, *, principal_id: int, project_id: int) -> CredentialView:
        await self._access.check_project_role(principal_id, project_id, Role.MEMBER)
        credential = await self._load(project_id)
        return CredentialView.from_model(credential)

    async def regenerate_api_keys(self, *, principal_id: int, project_id: int) -> TokenPair:
        """Replace the stored anon/service tokens, keeping the signing secret.

        Tokens issued before this call remain cryptographically valid because the
        secret does not change; use ``regenerate_signing_secret`` to revoke them.
        """
        project, _role = await self._access.check_project_role(principal_id, project_id, Role.ADMIN)
        organization_id = project.organization_id
        credential = await self._load(project_id)

        tokens = self._issuer.rotate_tokens(credential.signing_secret)
        await self._repository.update_credentials(
            credential,
            anon_token=tokens.anon_token,
            service_token=tokens.service_token,
        )
        await self._repository.commit()

        logger.info("project_api_keys_regenerated project_id=%s", project_id)
        await self._audit.record(
            principal_id=principal_id,
            action="project.credentials.regenerated",
            resource_type=RESOURCE_CREDENTIALS,
            resource_id=project_id,
            organization_id=organization_id,
            project_id=project_id,
        )
        return tokens

    async def regenerate_signing_secret(
        self, *, principal_id: int, project_id: int
    ) -> RotatedCredentials:
        project, _role = await self._access.check_project_role(principal_id, project_id, Role.ADMIN)
        organization_id = project.organization_id
        credential = await self._load(project_id)

        # Secret and both tokens change in one write so stored tokens always verify.
        rotated = self._issuer.rotate_signing_secret()
        await self._repository.update_credentials(
            credential,
            signing_secret=rotated.signing_secret,
            anon_token=rotated.anon_token,
            service_token=rotated.service_token,
        )
        await self._repository.commit()

        logger.info("project_signing_secret_regenerated project_id=%s", project_id)
        await self._audit.record(
            principal_id=principal_id,
            action="project.jwt.regenerated",
            resource_type=RESOURCE_CREDENTIALS,
            resource_id=project_id,
            organization_id=organization_id,
            project_id=project_id,
        )
        return rotated

    async def _load(self, project_id: int) -> ProjectCredential:
        credential = await self._repository.get_credentials(project_id)
        if credential is None:
            raise NotFoundError("credentials not found")
        return credential
