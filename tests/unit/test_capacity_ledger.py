# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the capacity ledger."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from backoffice.domains.capacity import CapacityLedger
from backoffice.domains.exceptions import (
    ClassNotEnrollableError,
    ClassNotFoundError,
    NoSeatsAvailableError,
)
from backoffice.models.common import ClassStatus


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def ledger(mock_db):
    """Create ledger with mock database."""
    return CapacityLedger(mock_db)


def update_result(rowcount: int) -> MagicMock:
    result = MagicMock()
    result.rowcount = rowcount
    return result


def class_row(seats: int, enrolled: int, status: ClassStatus) -> MagicMock:
    row = MagicMock()
    row.name = "Informática T1"
    row.seats = seats
    row.enrolled = enrolled
    row.status = status
    result = MagicMock()
    result.one_or_none.return_value = row
    return result


class TestReserveSeat:
    """Tests for seat reservation."""

    @pytest.mark.asyncio
    async def test_reserve_success(self, ledger, mock_db, sample_class_id) -> None:
        mock_db.execute.return_value = update_result(1)

        await ledger.reserve_seat(sample_class_id)

        assert mock_db.execute.await_count == 1
        sql = str(mock_db.execute.await_args.args[0])
        assert "enrolled < classes.seats" in sql

    @pytest.mark.asyncio
    async def test_full_class(self, ledger, mock_db, sample_class_id) -> None:
        mock_db.execute.side_effect = [
            update_result(0),
            class_row(seats=2, enrolled=2, status=ClassStatus.ACTIVE),
        ]

        with pytest.raises(NoSeatsAvailableError) as exc_info:
            await ledger.reserve_seat(sample_class_id)

        assert exc_info.value.details["seats"] == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [ClassStatus.ENDED, ClassStatus.CANCELLED])
    async def test_closed_class(self, ledger, mock_db, sample_class_id, status) -> None:
        mock_db.execute.side_effect = [
            update_result(0),
            class_row(seats=10, enrolled=1, status=status),
        ]

        with pytest.raises(ClassNotEnrollableError):
            await ledger.reserve_seat(sample_class_id)

    @pytest.mark.asyncio
    async def test_missing_class(self, ledger, mock_db, sample_class_id) -> None:
        missing = MagicMock()
        missing.one_or_none.return_value = None
        mock_db.execute.side_effect = [update_result(0), missing]

        with pytest.raises(ClassNotFoundError):
            await ledger.reserve_seat(sample_class_id)


class TestReleaseSeat:
    """Tests for seat release."""

    @pytest.mark.asyncio
    async def test_release(self, ledger, mock_db, sample_class_id) -> None:
        mock_db.execute.return_value = update_result(1)

        released = await ledger.release_seat(sample_class_id, 3)

        assert released == 3

    @pytest.mark.asyncio
    async def test_over_release_floors_at_zero(
        self, ledger, mock_db, sample_class_id, caplog
    ) -> None:
        enrolled = MagicMock()
        enrolled.scalar_one_or_none.return_value = 1
        mock_db.execute.side_effect = [update_result(0), enrolled, update_result(1)]

        with caplog.at_level("WARNING"):
            released = await ledger.release_seat(sample_class_id, 2)

        assert released == 1
        assert "flooring at zero" in caplog.text
        floor_sql = str(mock_db.execute.await_args_list[2].args[0])
        assert "enrolled=" in floor_sql.replace(" ", "")

    @pytest.mark.asyncio
    async def test_release_nothing(self, ledger, mock_db, sample_class_id) -> None:
        assert await ledger.release_seat(sample_class_id, 0) == 0
        mock_db.execute.assert_not_awaited()
