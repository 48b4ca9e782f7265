# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance request/response schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models.common import AttendanceStatus, OrmSchema, ReportAttendanceStatus


class AttendanceEntry(BaseModel):
    """One student's status within a batch."""

    student_id: UUID
    status: AttendanceStatus


class AttendanceResponse(OrmSchema):
    """Stored attendance row."""

    id: UUID
    student_id: UUID
    class_id: UUID
    date: date
    status: AttendanceStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AttendanceFilters(BaseModel):
    """Filters for listing attendance rows."""

    class_id: UUID | None = None
    student_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    status: AttendanceStatus | None = None
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class ClassReportRow(BaseModel):
    """One enrolled student's line on a class report."""

    student_id: UUID
    student_name: str
    matricula: str
    status: ReportAttendanceStatus


class ClassAttendanceReport(BaseModel):
    """Attendance of every actively enrolled student on one date."""

    class_id: UUID
    class_name: str
    date: date
    rows: list[ClassReportRow] = Field(default_factory=list)
    total: int = 0
    present: int = 0
    absent: int = 0
    excused: int = 0
    not_recorded: int = 0


class StudentAttendanceStats(BaseModel):
    """Attendance totals for a student, optionally within one class."""

    student_id: UUID
    class_id: UUID | None = None
    total: int = 0
    present: int = 0
    absent: int = 0
    excused: int = 0
    presence_percentage: float = 0.0
