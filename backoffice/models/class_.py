# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course and class request/response schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models.common import ClassStatus, OrmSchema, Shift


class CourseCreateRequest(BaseModel):
    """Request to create a course."""

    name: str = Field(min_length=1, max_length=200)
    workload_hours: int = Field(default=0, ge=0)
    description: str | None = None


class CourseResponse(OrmSchema):
    """Course details."""

    id: UUID
    name: str
    workload_hours: int
    description: str | None = None


class ClassCreateRequest(BaseModel):
    """Request to create a class."""

    name: str = Field(min_length=1, max_length=100)
    course_id: UUID
    shift: Shift = Shift.MORNING
    seats: int = Field(ge=0)
    start_date: date | None = None
    end_date: date | None = None
    status: ClassStatus = ClassStatus.PLANNED


class ClassUpdateRequest(BaseModel):
    """Request to update class fields other than status."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    shift: Shift | None = None
    seats: int | None = Field(default=None, ge=0)
    start_date: date | None = None
    end_date: date | None = None


class ClassResponse(OrmSchema):
    """Class details including seat usage."""

    id: UUID
    name: str
    course_id: UUID
    shift: Shift
    seats: int
    enrolled: int
    status: ClassStatus
    start_date: date | None = None
    end_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def available(self) -> int:
        """Free seats left."""
        return max(self.seats - self.enrolled, 0)


class SeatAvailability(BaseModel):
    """Seat usage snapshot for a class."""

    class_id: UUID
    seats: int
    enrolled: int
    available: int
    status: ClassStatus


class ClassStatistics(BaseModel):
    """Class counts and overall seat usage."""

    total: int = 0
    by_status: dict[ClassStatus, int] = Field(default_factory=dict)
    by_shift: dict[Shift, int] = Field(default_factory=dict)
    seats: int = 0
    enrolled: int = 0
