from __future__ import annotations

from baseplane.core.errors import ProvisioningError
from baseplane.providers.infrastructure.base import OrganizationContext, ProvisioningResult
from baseplane.services.credentials import generate_signing_secret


class FakeProvisioner:
    def __init__(self, *, fail_on: set[str] | None = None) -> None:
        # Operations named here ("provision", "deprovision", "pause", "resume") raise ProvisioningError.
        self.fail_on: set[str] = set(fail_on or ())
        self.calls: list[tuple[str, str]] = []

    def _maybe_fail(self, operation: str, slug: str) -> None:
        self.calls.append((operation, slug))
        if operation in self.fail_on:
            raise ProvisioningError(f"simulated {operation} failure for {slug}")

    async def provision(
        self, slug: str, organization: OrganizationContext, region: str
    ) -> ProvisioningResult:
        self._maybe_fail("provision", slug)
        return ProvisioningResult(
            signing_secret=generate_signing_secret(),
            storage_bucket=f"project-{slug}",
            connection_descriptor=f"postgresql://fake@localhost:5432/{organization.org_database}",
            host="localhost",
            port=5432,
            database_name=organization.org_database,
            db_username=f"user_{slug}",
            db_password="fake-password",
        )

    async def deprovision(self, slug: str, database_name: str) -> None:
        _ = database_name
        self._maybe_fail("deprovision", slug)

    async def pause(self, slug: str) -> None:
        self._maybe_fail("pause", slug)

    async def resume(self, slug: str) -> None:
        self._maybe_fail("resume", slug)
