from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class OrganizationContext:
    organization_id: int
    slug: str
    org_database: str


@dataclass(frozen=True)
class ProvisioningResult:
    signing_secret: str
    storage_bucket: str
    connection_descriptor: str
    host: str
    port: int
    database_name: str
    db_username: str
    db_password: str


class InfrastructureProvisioner(Protocol):
    """Narrow seam to the real infrastructure; every failure raises ``ProvisioningError``."""

    async def provision(
        self, slug: str, organization: OrganizationContext, region: str
    ) -> ProvisioningResult:
        ...

    async def deprovision(self, slug: str, database_name: str) -> None:
        ...

    async def pause(self, slug: str) -> None:
        ...

    async def resume(self, slug: str) -> None:
        ...
