import json
import logging
from decimal import Decimal
from datetime import datetime, date
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from printshop.config import Settings


logger = logging.getLogger(__name__)


# Custom JSON encoder that handles Decimal, datetime, UUID, etc.
class CustomJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal, datetime, UUID and other types."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        return super().default(obj)


def custom_json_dumps(obj):
    """JSON serializer used for JSON columns (payment history, product lines)."""
    return json.dumps(obj, cls=CustomJSONEncoder)


def normalize_database_url(url: str) -> str:
    """Switch plain PostgreSQL URLs to the async psycopg driver."""
    if url.startswith("postgresql+asyncpg://"):
        return url.replace("postgresql+asyncpg://", "postgresql+psycopg://")
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://")
    return url


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own BEGIN so SAVEPOINT works on pysqlite/aiosqlite.

    The order counter retries its increment inside begin_nested(), which
    needs real savepoints on SQLite as well as PostgreSQL.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # IMMEDIATE takes the write lock up front; concurrent writers then wait on
    # the busy timeout instead of failing a SHARED -> RESERVED upgrade
    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Process-wide connection pool and session factory.

    Built once in the application lifespan and stored on ``app.state``;
    handlers get sessions through :func:`get_db`. ``dispose()`` closes the
    pool on shutdown.
    """

    def __init__(self, settings: Settings, url: Optional[str] = None):
        self.url = normalize_database_url(url or settings.DATABASE_URL)
        self.is_sqlite = self.url.startswith("sqlite")

        # SQLite doesn't support pool settings
        if self.is_sqlite:
            self.engine = create_async_engine(
                self.url,
                echo=settings.DEBUG,
                json_serializer=custom_json_dumps,
                connect_args={"check_same_thread": False},
            )
            _enable_sqlite_savepoints(self.engine)
        else:
            self.engine = create_async_engine(
                self.url,
                echo=settings.DEBUG,
                json_serializer=custom_json_dumps,
                pool_pre_ping=True,  # Check connection health before use
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                connect_args={"connect_timeout": 30},
            )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_all(self) -> None:
        """Create tables for all registered models."""
        # Import all models to register them with Base.metadata
        from printshop import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Registered {len(Base.metadata.tables)} tables")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connection pool closed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get a request-scoped database session.

    Everything a handler writes commits together, or rolls back together
    when the handler raises.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
