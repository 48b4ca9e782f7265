# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and base schemas.

Enum values are the uppercase Portuguese vocabulary the records are stored
with; member names are what the code reads.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CandidateStatus(str, Enum):
    """Candidate intake status."""

    PENDING = "PENDENTE"
    APPROVED = "APROVADO"
    REJECTED = "REPROVADO"


class ClassStatus(str, Enum):
    """Class lifecycle status."""

    PLANNED = "PLANEJADA"
    ACTIVE = "ATIVA"
    ENDED = "ENCERRADA"
    CANCELLED = "CANCELADA"


class EnrollmentStatus(str, Enum):
    """Student-in-class enrollment status."""

    ACTIVE = "ATIVA"
    CANCELLED = "CANCELADA"
    COMPLETED = "CONCLUIDA"


class AttendanceStatus(str, Enum):
    """Recorded attendance status for a student on a date."""

    PRESENT = "PRESENTE"
    ABSENT = "AUSENTE"
    EXCUSED = "JUSTIFICADO"


class ReportAttendanceStatus(str, Enum):
    """Attendance status as shown on a class report.

    Adds NOT_RECORDED for enrolled students without a row on the date.
    """

    PRESENT = "PRESENTE"
    ABSENT = "AUSENTE"
    EXCUSED = "JUSTIFICADO"
    NOT_RECORDED = "NAO_REGISTRADO"


class Shift(str, Enum):
    """Time of day a class meets."""

    MORNING = "MANHA"
    AFTERNOON = "TARDE"
    EVENING = "NOITE"
    FULL_DAY = "INTEGRAL"


class AuditAction(str, Enum):
    """Kinds of operations recorded in the audit trail."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class OrmSchema(BaseModel):
    """Base for response schemas built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class PaginationParams(BaseModel):
    """Offset pagination for list operations."""

    limit: int = 50
    offset: int = 0
