from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from baseplane.core.config import Settings, get_settings
from baseplane.domain.models import Base


logger = logging.getLogger(__name__)


def build_engine(database_url: str, settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()
    engine_kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.db_echo}
    # Configure bounded asyncpg pools; SQLite (tests, local dev) uses its own static pooling.
    if not database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = max(1, int(settings.db_pool_size))
        engine_kwargs["max_overflow"] = max(0, int(settings.db_max_overflow))
        engine_kwargs["pool_timeout"] = 30
        engine_kwargs["pool_recycle"] = 1800
        if settings.db_statement_timeout_ms > 0:
            engine_kwargs["connect_args"] = {
                "server_settings": {"statement_timeout": str(int(settings.db_statement_timeout_ms))}
            }
    return create_async_engine(database_url, **engine_kwargs)


class Database:
    """Owns the engine and session factory for one process.

    Constructed explicitly at startup and handed to whatever needs sessions;
    ``dispose`` releases pooled connections on shutdown.
    """

    def __init__(self, database_url: str | None = None, *, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.url = database_url or settings.database_url
        self.engine = build_engine(self.url, settings)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        # Schema bootstrap for tests and local dev; deployed databases use Alembic migrations.
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.debug("database_disposed url=%s", self.engine.url.render_as_string(hide_password=True))

