"""Database engine and transactional scopes.

Hey future me - enrichment commits in small steps (each applied field, each queued
conflict, each log row is its own transaction) while the API reads history and
conflicts at the same time. On SQLite that only works well in WAL mode, so file
databases get it on every connection. In-memory databases can't do WAL and keep the
default journal.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from echometa.config import Settings

logger = logging.getLogger(__name__)

# Seconds a writer waits for the SQLite lock before failing with "database is locked"
SQLITE_LOCK_TIMEOUT = 30


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:")


class Database:
    """Owns the async engine and hands out session scopes."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        db = settings.database

        engine_kwargs: dict[str, Any] = {"echo": db.echo, "pool_pre_ping": db.pool_pre_ping}
        if _is_sqlite(db.url):
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": SQLITE_LOCK_TIMEOUT,
            }
        else:
            engine_kwargs.update(
                pool_size=db.pool_size,
                max_overflow=db.max_overflow,
                pool_timeout=db.pool_timeout,
                pool_recycle=db.pool_recycle,
            )

        self._engine = create_async_engine(db.url, **engine_kwargs)
        if _is_sqlite(db.url):
            self._install_sqlite_pragmas(wal=not _is_memory_sqlite(db.url))

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _install_sqlite_pragmas(self, wal: bool) -> None:
        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        logger.debug("SQLite pragmas installed (foreign_keys=ON, wal=%s)", wal)

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: commit on success, rollback on anything else."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                # Cancellation included; always re-raised
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create the schema directly (tests and first start; production uses alembic)."""
        from echometa.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    async def close(self) -> None:
        await self._engine.dispose()
