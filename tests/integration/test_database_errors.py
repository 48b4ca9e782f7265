# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for database failures surfacing through the facade."""

import pytest
import pytest_asyncio
from sqlalchemy import update

from backoffice.app import Backoffice
from backoffice.core.config.settings import DatabaseSettings, NotificationSettings, Settings
from backoffice.infrastructure.database import DatabaseError
from backoffice.infrastructure.database.models import Class
from backoffice.models.common import CandidateStatus

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def impatient_backoffice(settings):
    """Second Backoffice on the same database that gives up on locks quickly."""
    office = await Backoffice.create(
        Settings(
            environment="test",
            database=DatabaseSettings(url_override=settings.database.url, busy_timeout=0.1),
            notification=NotificationSettings(enabled=False),
        ),
        audit_enabled=False,
    )
    yield office
    await office.close()


class TestDatabaseErrors:
    """Tests for DatabaseError wrapping of facade calls."""

    @pytest.mark.asyncio
    async def test_lock_timeout_is_a_database_error(
        self, backoffice, impatient_backoffice, make_class, make_candidate, enrolled_count
    ) -> None:
        class_ = await make_class(seats=2)
        candidate = await make_candidate(class_.id)

        async with backoffice.sessionmaker() as holder:
            await holder.execute(
                update(Class).where(Class.id == str(class_.id)).values(name="Turma Bloqueada")
            )

            with pytest.raises(DatabaseError) as exc_info:
                await impatient_backoffice.approve_candidate(candidate.id)

            await holder.rollback()

        assert "locked" in str(exc_info.value.original_error)
        assert (await backoffice.get_candidate(candidate.id)).status == CandidateStatus.PENDING
        assert await enrolled_count(class_.id) == 0

    @pytest.mark.asyncio
    async def test_check_connection(self, backoffice) -> None:
        assert await backoffice.check_connection() is True
