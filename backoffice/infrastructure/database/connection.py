# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API with asyncpg for PostgreSQL and aiosqlite
for SQLite. The Backoffice facade owns one engine; services receive an
``AsyncSession`` and own their commit.

On SQLite the driver keeps its default deferred transaction handling:
a transaction starts at the first write, so the guarded seat update is the
statement that takes the database write lock. Concurrent writers wait up
to ``busy_timeout`` seconds for it.

Example:
    from backoffice.infrastructure.database.connection import (
        build_engine,
        build_sessionmaker,
        get_session,
    )

    engine = build_engine(settings)
    sessionmaker = build_sessionmaker(engine)

    async with get_session(sessionmaker) as session:
        result = await session.execute(select(Class))
        classes = result.scalars().all()
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Optional

from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backoffice.infrastructure.database.models import Base

if TYPE_CHECKING:
    from backoffice.core.config.settings import Settings

_UPSERT_DIALECTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def build_engine(settings: "Settings") -> AsyncEngine:
    """Create an async engine for the configured database URL.

    Pool sizing only applies to server databases; SQLite gets the busy
    timeout instead.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        A new AsyncEngine.
    """
    db = settings.database
    engine_kwargs: dict[str, Any] = {"echo": db.echo}

    if db.is_sqlite:
        engine_kwargs["connect_args"] = {"timeout": db.busy_timeout}
    else:
        engine_kwargs.update(
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
        )

    return create_async_engine(db.url, **engine_kwargs)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by every service."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Get an async session for one unit of work.

    The session is automatically committed on success and rolled back
    on exception. Services that commit themselves leave nothing pending,
    so the final commit is a no-op for them.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If a database operation fails, including lock
            timeouts and lost connections.
    """
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


def dialect_insert(session: AsyncSession) -> Callable[..., Any]:
    """Return the dialect ``insert`` construct supporting ON CONFLICT.

    Raises:
        NotImplementedError: If the bound database has no native upsert here.
    """
    dialect = session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Upsert not supported on {dialect}")
    return insert


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if the database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
