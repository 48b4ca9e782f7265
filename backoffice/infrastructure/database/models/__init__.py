# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from backoffice.infrastructure.database.models.academic import (
    Class,
    ClassInstructor,
    Course,
    Instructor,
)
from backoffice.infrastructure.database.models.attendance import Attendance
from backoffice.infrastructure.database.models.audit import AuditLog
from backoffice.infrastructure.database.models.base import Base, new_id, row_to_dict
from backoffice.infrastructure.database.models.enrollment import (
    Enrollment,
    EnrollmentSequence,
)
from backoffice.infrastructure.database.models.people import Candidate, Student

__all__ = [
    "Base",
    "new_id",
    "row_to_dict",
    "Course",
    "Class",
    "Instructor",
    "ClassInstructor",
    "Candidate",
    "Student",
    "Enrollment",
    "EnrollmentSequence",
    "Attendance",
    "AuditLog",
]
