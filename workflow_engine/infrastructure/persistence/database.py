"""
Database configuration for the workflow engine.

Provides:
- Database URL conversion to async drivers
- Database: async engine, session factory and schema creation
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger("workflow-engine.infrastructure.persistence.database")


def to_async_url(database_url: str) -> str:
    """
    Convert a database URL to its async driver form.

    sqlite:/// becomes sqlite+aiosqlite:///, postgresql:// becomes
    postgresql+asyncpg://; URLs that already name a driver are kept.
    """
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


class Database:
    """
    Async engine and session factory.

    Атрибуты:
        url: Исходный URL
        async_url: URL с async драйвером
        engine: AsyncEngine
        session_maker: Фабрика AsyncSession
    """

    def __init__(self, url: str, engine: AsyncEngine):
        self.url = url
        self.async_url = str(engine.url)
        self.engine = engine
        self.session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session with commit on success and rollback on error.

        Yields:
            AsyncSession: Database session
        """
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                logger.error(f"Database session failed, rolling back: {e}")
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema initialized")

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


def init_database(database_url: str, echo: bool = False) -> Database:
    """
    Initialize database engine and session maker.

    In-memory SQLite uses a StaticPool so every session sees the same
    database; file SQLite gets WAL pragmas and its directory created.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log SQL statements
    """
    async_url = to_async_url(database_url)

    if async_url.startswith("sqlite+aiosqlite:///") and ":memory:" not in async_url:
        db_path = async_url.replace("sqlite+aiosqlite:///", "", 1)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if "sqlite" in async_url:
        in_memory = ":memory:" in async_url
        options = {"connect_args": {"check_same_thread": False}}
        if in_memory:
            options["poolclass"] = StaticPool
        engine = create_async_engine(async_url, echo=echo, **options)

        if not in_memory:
            @event.listens_for(engine.sync_engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                """Set SQLite pragmas for concurrent readers"""
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=30000")
                cursor.close()
    else:
        engine = create_async_engine(async_url, echo=echo, pool_pre_ping=True)

    logger.info(f"Database initialized with URL: {database_url}")
    return Database(database_url, engine)
