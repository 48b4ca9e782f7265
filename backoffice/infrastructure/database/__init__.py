# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

This package provides SQLAlchemy async database connections and the ORM
models for the back office.

Example:
    from backoffice.infrastructure.database import get_session

    async with get_session(sessionmaker) as session:
        result = await session.execute(select(Candidate))
"""

from backoffice.infrastructure.database.connection import (
    DatabaseError,
    build_engine,
    build_sessionmaker,
    check_database_connection,
    create_schema,
    dialect_insert,
    get_session,
)

__all__ = [
    "DatabaseError",
    "build_engine",
    "build_sessionmaker",
    "check_database_connection",
    "create_schema",
    "dialect_insert",
    "get_session",
]
