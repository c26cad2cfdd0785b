from __future__ import annotations

import pytest

from baseplane.core.config import get_settings
from baseplane.persistence.db import Database
from baseplane.persistence.repository import TenantRepository
from baseplane.providers.infrastructure.fake import FakeProvisioner
from baseplane.services.control_plane import ControlPlane
from baseplane.services.plans import seed_plan_limits


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    # Settings are cached per process; env overrides in one test must not leak into the next.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def database(tmp_path) -> Database:
    # File-backed SQLite per test so every session sees the same committed state.
    db = Database(f"sqlite+aiosqlite:///{tmp_path}/baseplane.db")
    await db.create_all()
    async with db.session() as session:
        await seed_plan_limits(TenantRepository(session))
    yield db
    await db.dispose()


@pytest.fixture
async def session(database: Database):
    async with database.session() as db_session:
        yield db_session


@pytest.fixture
def repository(session) -> TenantRepository:
    return TenantRepository(session)


@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def control_plane(repository: TenantRepository, provisioner: FakeProvisioner) -> ControlPlane:
    return ControlPlane(repository=repository, provisioner=provisioner)
