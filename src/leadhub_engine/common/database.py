"""Async database manager for LeadHub-Engine (single-DB)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from leadhub_engine.common.config import LeadhubSettings, get_settings
from leadhub_engine.common.models import Base
from leadhub_engine.common.reconnect import with_reconnect

# Import all model modules so Base.metadata is complete for create_all().
import leadhub_engine.tenants.models  # noqa: F401
import leadhub_engine.billing.models  # noqa: F401
import leadhub_engine.monitor.models  # noqa: F401
import leadhub_engine.automation.models  # noqa: F401
import leadhub_engine.credentials.models  # noqa: F401
import leadhub_engine.activity.models  # noqa: F401

T = TypeVar("T")


class DatabaseManager:
    """Manages a single async database engine."""

    def __init__(self, settings: LeadhubSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def dialect(self) -> str:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        return self.engine.dialect.name

    async def init(self) -> None:
        url = self._settings.db_url
        kwargs = {}
        if not url.startswith("sqlite"):
            kwargs["pool_pre_ping"] = True
        self.engine = create_async_engine(url, echo=False, **kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def run(
        self,
        fn: Callable[[AsyncSession], Awaitable[T]],
        max_retries: int | None = None,
        base_delay: float | None = None,
        on_retry=None,
    ) -> T:
        """Run ``fn`` in its own committed session, retrying dropped connections.

        Every attempt gets a fresh session, so ``fn`` must be a read or an
        upsert that is safe to repeat.
        """

        async def attempt() -> T:
            async with self.get_session() as session:
                return await fn(session)

        return await with_reconnect(
            attempt,
            max_retries=self._settings.db_max_retries if max_retries is None else max_retries,
            base_delay=self._settings.db_retry_base_delay if base_delay is None else base_delay,
            on_retry=on_retry,
        )

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None


def upsert_insert(session: AsyncSession, table):
    """Return a dialect-specific ``insert()`` supporting ``on_conflict_*``."""
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Upsert not supported for dialect {dialect!r}")
    return insert(table)
