# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Every test gets a fresh SQLite database file with the full schema, a
Backoffice wired to it and a notifier that records instead of sending.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import select

from backoffice.app import Backoffice
from backoffice.core.config.settings import DatabaseSettings, NotificationSettings, Settings
from backoffice.infrastructure.database.models import Class
from backoffice.infrastructure.notifications import NotificationTemplate
from backoffice.models.candidate import CandidateCreateRequest, CandidateResponse
from backoffice.models.class_ import ClassCreateRequest, ClassResponse, CourseCreateRequest
from backoffice.models.common import ClassStatus

FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

# Weak-mode CPFs: eleven digits, not all equal
CPFS = [f"{n:011d}" for n in range(10000000001, 10000000101)]


class RecordingNotifier:
    """Notification dispatcher that keeps messages in memory."""

    def __init__(self) -> None:
        self.sent: list[tuple[str | None, NotificationTemplate, dict[str, Any]]] = []

    def dispatch(self, recipient, template, data) -> None:
        self.sent.append((recipient, NotificationTemplate(template), data))

    def templates(self) -> list[NotificationTemplate]:
        return [template for _, template, _ in self.sent]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a temporary SQLite database."""
    return Settings(
        environment="test",
        database=DatabaseSettings(
            url_override=f"sqlite+aiosqlite:///{tmp_path / 'backoffice.db'}",
            busy_timeout=30.0,
        ),
        notification=NotificationSettings(enabled=False),
    )


@pytest_asyncio.fixture
async def backoffice(settings, notifier) -> AsyncGenerator[Backoffice, None]:
    """Backoffice over a fresh schema."""
    office = await Backoffice.create(
        settings,
        notifier=notifier,
        clock=lambda: FIXED_NOW,
        create_tables=True,
    )
    yield office
    await office.close()


@pytest_asyncio.fixture
async def course(backoffice):
    return await backoffice.create_course(
        CourseCreateRequest(name="Informática Básica", workload_hours=40)
    )


@pytest.fixture
def make_class(backoffice, course) -> Callable[..., Awaitable[ClassResponse]]:
    """Factory creating classes of the test course."""
    counter = iter(range(1, 1000))

    async def _make(seats: int = 10, status: ClassStatus = ClassStatus.ACTIVE, **fields):
        return await backoffice.create_class(
            ClassCreateRequest(
                name=fields.pop("name", f"Turma {next(counter)}"),
                course_id=course.id,
                seats=seats,
                status=status,
                start_date=date(2025, 3, 1),
                end_date=date(2025, 6, 30),
                **fields,
            )
        )

    return _make


@pytest.fixture
def make_candidate(backoffice) -> Callable[..., Awaitable[CandidateResponse]]:
    """Factory creating pending candidates with distinct national IDs."""
    cpfs = iter(CPFS)

    async def _make(desired_class_id=None, **fields):
        cpf = fields.pop("cpf", None) or next(cpfs)
        name = fields.pop("name", f"Candidato {cpf[-3:]}")
        return await backoffice.create_candidate(
            CandidateCreateRequest(
                cpf=cpf,
                name=name,
                email=fields.pop("email", f"c{cpf}@example.com"),
                desired_class_id=desired_class_id,
                **fields,
            )
        )

    return _make


@pytest.fixture
def enrolled_count(backoffice) -> Callable[..., Awaitable[int]]:
    """Read classes.enrolled straight from the database."""

    async def _read(class_id) -> int:
        async with backoffice.sessionmaker() as session:
            result = await session.execute(
                select(Class.enrolled).where(Class.id == str(class_id))
            )
            return result.scalar_one()

    return _read
