from __future__ import annotations

from baseplane.core.config import get_settings
from baseplane.providers.infrastructure.base import InfrastructureProvisioner
from baseplane.providers.infrastructure.fake import FakeProvisioner
from baseplane.providers.infrastructure.simulated import SimulatedProvisioner


def get_provisioner() -> InfrastructureProvisioner:
    settings = get_settings()
    provider = (settings.infra_provider or "simulated").lower()

    if provider == "fake":
        return FakeProvisioner()
    if provider == "simulated":
        return SimulatedProvisioner()

    raise ValueError(f"Unsupported infrastructure provider: {provider}")
