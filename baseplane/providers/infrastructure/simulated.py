from __future__ import annotations

import logging
import secrets

from baseplane.core.config import get_settings
from baseplane.providers.infrastructure.base import OrganizationContext, ProvisioningResult
from baseplane.services.credentials import generate_signing_secret
from baseplane.services.slugs import to_identifier


logger = logging.getLogger(__name__)


def database_credentials(slug: str) -> tuple[str, str]:
    # Per-project database role scoped to the project's schema.
    return f"user_{to_identifier(slug)}", secrets.token_urlsafe(24)


def storage_bucket_name(slug: str) -> str:
    return f"project-{slug}"


class SimulatedProvisioner:
    """Computes what would be provisioned and logs it without touching infrastructure.

    A real deployment replaces each step with calls to the database cluster admin
    connection, object storage, the connection pooler and the realtime service.
    """

    def __init__(self, *, host: str | None = None, port: int | None = None) -> None:
        settings = get_settings()
        self._host = host or settings.postgres_cluster_host
        self._port = port or settings.postgres_cluster_port
        self._secret_bytes = settings.signing_secret_bytes

    async def provision(
        self, slug: str, organization: OrganizationContext, region: str
    ) -> ProvisioningResult:
        db_username, db_password = database_credentials(slug)
        database_name = organization.org_database
        bucket = storage_bucket_name(slug)
        connection_descriptor = (
            f"postgresql://{db_username}:{db_password}@{self._host}:{self._port}/{database_name}"
            f"?options=-csearch_path%3Dproject_{to_identifier(slug)}"
        )
        logger.info(
            "provision_simulated slug=%s organization_id=%s region=%s database=%s bucket=%s",
            slug,
            organization.organization_id,
            region,
            database_name,
            bucket,
        )
        return ProvisioningResult(
            signing_secret=generate_signing_secret(self._secret_bytes),
            storage_bucket=bucket,
            connection_descriptor=connection_descriptor,
            host=self._host,
            port=self._port,
            database_name=database_name,
            db_username=db_username,
            db_password=db_password,
        )

    async def deprovision(self, slug: str, database_name: str) -> None:
        logger.info(
            "deprovision_simulated slug=%s database=%s bucket=%s",
            slug,
            database_name,
            storage_bucket_name(slug),
        )

    async def pause(self, slug: str) -> None:
        logger.info("pause_simulated slug=%s", slug)

    async def resume(self, slug: str) -> None:
        logger.info("resume_simulated slug=%s", slug)
