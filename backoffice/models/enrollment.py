# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request/response schemas."""

from datetime import datetime
from uuid import UUID

from backoffice.models.common import EnrollmentStatus, OrmSchema


class EnrollmentResponse(OrmSchema):
    """Enrollment details."""

    id: UUID
    student_id: UUID
    class_id: UUID
    status: EnrollmentStatus
    enrolled_at: datetime
    cancelled_at: datetime | None = None


class EnrollmentSummary(OrmSchema):
    """Enrollment row with the student's display fields."""

    id: UUID
    student_id: UUID
    student_name: str
    matricula: str
    status: EnrollmentStatus
    enrolled_at: datetime
