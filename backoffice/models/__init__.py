# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request/response schemas and shared enums."""

from backoffice.models.attendance import (
    AttendanceEntry,
    AttendanceFilters,
    AttendanceResponse,
    ClassAttendanceReport,
    ClassReportRow,
    StudentAttendanceStats,
)
from backoffice.models.audit import AuditLogFilters, AuditLogResponse, AuditStats
from backoffice.models.candidate import (
    ApprovalResult,
    CandidateCreateRequest,
    CandidateFilters,
    CandidateResponse,
    CandidateStatistics,
    CandidateUpdateRequest,
)
from backoffice.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassStatistics,
    ClassUpdateRequest,
    CourseCreateRequest,
    CourseResponse,
    SeatAvailability,
)
from backoffice.models.common import (
    AttendanceStatus,
    AuditAction,
    CandidateStatus,
    ClassStatus,
    EnrollmentStatus,
    ReportAttendanceStatus,
    Shift,
)
from backoffice.models.enrollment import EnrollmentResponse, EnrollmentSummary
from backoffice.models.student import (
    StudentCreateRequest,
    StudentFilters,
    StudentResponse,
    StudentUpdateRequest,
)

__all__ = [
    # Enums
    "AttendanceStatus",
    "AuditAction",
    "CandidateStatus",
    "ClassStatus",
    "EnrollmentStatus",
    "ReportAttendanceStatus",
    "Shift",
    # Classes
    "CourseCreateRequest",
    "CourseResponse",
    "ClassCreateRequest",
    "ClassUpdateRequest",
    "ClassResponse",
    "SeatAvailability",
    "ClassStatistics",
    # Candidates
    "CandidateCreateRequest",
    "CandidateUpdateRequest",
    "CandidateResponse",
    "CandidateFilters",
    "CandidateStatistics",
    "ApprovalResult",
    # Students and enrollments
    "StudentCreateRequest",
    "StudentUpdateRequest",
    "StudentResponse",
    "StudentFilters",
    "EnrollmentResponse",
    "EnrollmentSummary",
    # Attendance
    "AttendanceEntry",
    "AttendanceFilters",
    "AttendanceResponse",
    "ClassAttendanceReport",
    "ClassReportRow",
    "StudentAttendanceStats",
    # Audit
    "AuditLogFilters",
    "AuditLogResponse",
    "AuditStats",
]
