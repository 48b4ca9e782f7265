# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database connection helpers."""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import func, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError

from backoffice.core.config.settings import DatabaseSettings, Settings
from backoffice.domains.exceptions import ClassNotFoundError
from backoffice.infrastructure.database import (
    DatabaseError,
    build_engine,
    build_sessionmaker,
    check_database_connection,
    create_schema,
    dialect_insert,
    get_session,
)
from backoffice.infrastructure.database.models import Course


def _settings(url: str) -> Settings:
    return Settings(environment="test", database=DatabaseSettings(url_override=url))


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(_settings(f"sqlite+aiosqlite:///{tmp_path / 'connection.db'}"))
    await create_schema(engine)
    yield engine
    await engine.dispose()


class TestGetSession:
    """Tests for get_session."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, engine) -> None:
        sessionmaker = build_sessionmaker(engine)

        async with get_session(sessionmaker) as session:
            session.add(Course(name="Redes", workload_hours=20))

        async with sessionmaker() as session:
            count = (await session.execute(select(func.count()).select_from(Course))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_wraps_database_errors(self, engine) -> None:
        with pytest.raises(DatabaseError) as exc_info:
            async with get_session(build_sessionmaker(engine)) as session:
                await session.execute(text("SELECT * FROM missing_table"))

        assert isinstance(exc_info.value.original_error, OperationalError)
        assert "Database operation failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_domain_errors_pass_through_and_roll_back(self, engine) -> None:
        sessionmaker = build_sessionmaker(engine)

        with pytest.raises(ClassNotFoundError):
            async with get_session(sessionmaker) as session:
                session.add(Course(name="Redes", workload_hours=20))
                await session.flush()
                raise ClassNotFoundError("Class x not found")

        async with sessionmaker() as session:
            count = (await session.execute(select(func.count()).select_from(Course))).scalar_one()
        assert count == 0


class TestCheckDatabaseConnection:
    """Tests for check_database_connection."""

    @pytest.mark.asyncio
    async def test_reachable(self, engine) -> None:
        assert await check_database_connection(engine) is True

    @pytest.mark.asyncio
    async def test_unreachable(self, tmp_path) -> None:
        engine = build_engine(
            _settings(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}")
        )
        try:
            assert await check_database_connection(engine) is False
        finally:
            await engine.dispose()


class TestDialectInsert:
    """Tests for dialect_insert."""

    @staticmethod
    def _session(dialect: str) -> MagicMock:
        session = MagicMock()
        session.get_bind.return_value.dialect.name = dialect
        return session

    def test_postgresql(self) -> None:
        assert dialect_insert(self._session("postgresql")) is postgresql.insert

    def test_sqlite(self) -> None:
        assert dialect_insert(self._session("sqlite")) is sqlite.insert

    def test_unsupported(self) -> None:
        with pytest.raises(NotImplementedError, match="mysql"):
            dialect_insert(self._session("mysql"))
