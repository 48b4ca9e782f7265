# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seat accounting for classes.

The ledger never reads a count and writes it back. Every change is a
single guarded UPDATE whose WHERE clause carries the capacity rule, and
the affected-row count tells whether the rule held:

    UPDATE classes SET enrolled = enrolled + 1
    WHERE id = :id AND enrolled < seats AND status IN ('PLANEJADA', 'ATIVA')

On PostgreSQL the statement takes the class row lock, so concurrent
reservations queue on it and re-evaluate the guard after the holder
commits. On SQLite it takes the database write lock. Either way two
callers can never both take the last seat.

The ledger runs inside the caller's transaction and never commits.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.domains.exceptions import (
    ClassNotEnrollableError,
    ClassNotFoundError,
    NoSeatsAvailableError,
)
from backoffice.infrastructure.database.models import Class
from backoffice.models.class_ import SeatAvailability
from backoffice.models.common import ClassStatus

logger = logging.getLogger(__name__)

ENROLLABLE_STATUSES = (ClassStatus.PLANNED, ClassStatus.ACTIVE)


class CapacityLedger:
    """Atomic seat reservation and release for classes.

    Attributes:
        db: Async database session of the enclosing unit of work.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the ledger.

        Args:
            db: Async database session; the caller owns commit/rollback.
        """
        self.db = db

    async def reserve_seat(self, class_id: UUID | str) -> None:
        """Take one seat in a class.

        Args:
            class_id: Class identifier.

        Raises:
            ClassNotFoundError: If class not found.
            ClassNotEnrollableError: If the class is ended or cancelled.
            NoSeatsAvailableError: If every seat is taken.
        """
        stmt = (
            update(Class)
            .where(
                Class.id == str(class_id),
                Class.enrolled < Class.seats,
                Class.status.in_(ENROLLABLE_STATUSES),
            )
            .values(enrolled=Class.enrolled + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 1:
            logger.debug("Reserved seat: class=%s", class_id)
            return

        await self._raise_reservation_failure(class_id)

    async def release_seat(self, class_id: UUID | str, count: int = 1) -> int:
        """Give back seats in a class.

        Releasing more seats than are taken floors ``enrolled`` at zero and
        logs an invariant warning instead of failing.

        Args:
            class_id: Class identifier.
            count: Number of seats to release.

        Returns:
            Number of seats actually released.

        Raises:
            ClassNotFoundError: If class not found.
        """
        if count <= 0:
            return 0

        stmt = (
            update(Class)
            .where(Class.id == str(class_id), Class.enrolled >= count)
            .values(enrolled=Class.enrolled - count)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 1:
            logger.debug("Released %d seat(s): class=%s", count, class_id)
            return count

        enrolled = await self._current_enrolled(class_id)
        if enrolled is None:
            raise ClassNotFoundError(f"Class {class_id} not found")

        logger.warning(
            "Seat release exceeds enrolled count, flooring at zero: "
            "class=%s, enrolled=%d, requested=%d",
            class_id,
            enrolled,
            count,
        )
        floor_stmt = (
            update(Class)
            .where(Class.id == str(class_id))
            .values(enrolled=0)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(floor_stmt)
        return enrolled

    async def get_availability(self, class_id: UUID | str) -> SeatAvailability:
        """Read the current seat usage of a class.

        Raises:
            ClassNotFoundError: If class not found.
        """
        result = await self.db.execute(
            select(Class.seats, Class.enrolled, Class.status).where(
                Class.id == str(class_id)
            )
        )
        row = result.one_or_none()
        if row is None:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return SeatAvailability(
            class_id=class_id,
            seats=row.seats,
            enrolled=row.enrolled,
            available=max(row.seats - row.enrolled, 0),
            status=row.status,
        )

    async def _current_enrolled(self, class_id: UUID | str) -> int | None:
        result = await self.db.execute(
            select(Class.enrolled).where(Class.id == str(class_id))
        )
        return result.scalar_one_or_none()

    async def _raise_reservation_failure(self, class_id: UUID | str) -> None:
        """Work out why a guarded reservation matched no row and raise."""
        result = await self.db.execute(
            select(Class.name, Class.seats, Class.enrolled, Class.status).where(
                Class.id == str(class_id)
            )
        )
        row = result.one_or_none()

        if row is None:
            raise ClassNotFoundError(f"Class {class_id} not found")

        if row.status not in ENROLLABLE_STATUSES:
            raise ClassNotEnrollableError(
                f"Class {row.name} is {row.status.value} and does not accept enrollments",
                {"class_id": str(class_id), "status": row.status.value},
            )

        logger.info(
            "No seats available: class=%s, seats=%d, enrolled=%d",
            class_id,
            row.seats,
            row.enrolled,
        )
        raise NoSeatsAvailableError(
            f"Class {row.name} has no seats available",
            {"class_id": str(class_id), "seats": row.seats, "enrolled": row.enrolled},
        )
