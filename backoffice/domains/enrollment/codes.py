# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Matrícula (student enrollment code) allocation.

A matrícula is ``<year><sequence>`` with the sequence zero-padded, e.g.
``20250001``. Sequence values come from the per-year row of
``enrollment_sequences``, advanced with a guarded increment so two
concurrent approvals can never read the same value. The first allocation
of a year seeds the counter with the current number of students, which
keeps codes compatible with those issued before the counter existed.

Allocation runs in the caller's transaction: a rolled back approval
gives its value back.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.infrastructure.database import dialect_insert
from backoffice.infrastructure.database.models import EnrollmentSequence, Student
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SEQUENCE_WIDTH = 4


def format_matricula(year: int, value: int, width: int = DEFAULT_SEQUENCE_WIDTH) -> str:
    """Format a matrícula from its year and sequence value.

    Values wider than ``width`` are kept whole rather than truncated.
    """
    return f"{year}{value:0{width}d}"


class MatriculaAllocator:
    """Allocates unique matrícula codes.

    Attributes:
        db: Async database session of the enclosing unit of work.
        clock: Source of the current year.
        width: Zero-padded width of the sequence part.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utc_now,
        width: int = DEFAULT_SEQUENCE_WIDTH,
    ) -> None:
        self.db = db
        self.clock = clock
        self.width = width

    async def allocate(self) -> str:
        """Reserve the next free matrícula for the current year.

        Returns:
            A matrícula not used by any student.
        """
        year = self.clock().year

        while True:
            value = await self._next_value(year)
            code = format_matricula(year, value, self.width)
            if not await self._is_taken(code):
                logger.debug("Allocated matricula %s", code)
                return code
            logger.info("Matricula %s already taken, advancing sequence", code)

    async def _next_value(self, year: int) -> int:
        if await self._increment(year):
            return await self._current_value(year)

        # First allocation of the year. Concurrent seeders conflict on the
        # year key and all but one insert become no-ops.
        student_count = (
            await self.db.execute(select(func.count()).select_from(Student))
        ).scalar_one()
        insert = dialect_insert(self.db)
        await self.db.execute(
            insert(EnrollmentSequence)
            .values(year=year, last_value=student_count)
            .on_conflict_do_nothing(index_elements=[EnrollmentSequence.year])
        )
        logger.info("Seeded matricula sequence for %d at %d", year, student_count)

        if not await self._increment(year):
            raise RuntimeError(f"Matricula sequence for {year} is missing after seeding")
        return await self._current_value(year)

    async def _increment(self, year: int) -> bool:
        result = await self.db.execute(
            update(EnrollmentSequence)
            .where(EnrollmentSequence.year == year)
            .values(last_value=EnrollmentSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _current_value(self, year: int) -> int:
        return (
            await self.db.execute(
                select(EnrollmentSequence.last_value).where(EnrollmentSequence.year == year)
            )
        ).scalar_one()

    async def _is_taken(self, code: str) -> bool:
        result = await self.db.execute(select(Student.id).where(Student.matricula == code))
        return result.first() is not None
