# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Candidate and student tables.

A national ID (CPF) is unique within each table; uniqueness across the two
tables is checked by the services before insert.
"""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    enum_column_type,
)
from backoffice.models.common import CandidateStatus


class Candidate(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Public applicant waiting for a seat in a class."""

    __tablename__ = "candidates"

    cpf: Mapped[str] = mapped_column(String(11), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(30))
    desired_class_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="SET NULL"), index=True
    )
    status: Mapped[CandidateStatus] = mapped_column(
        enum_column_type(CandidateStatus),
        default=CandidateStatus.PENDING,
        nullable=False,
        index=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    student_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="SET NULL", use_alter=True)
    )


class Student(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Enrolled student identified by a system-generated matrícula."""

    __tablename__ = "students"

    matricula: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    cpf: Mapped[str] = mapped_column(String(11), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(30))
    class_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="SET NULL"), index=True
    )
    candidate_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("candidates.id", ondelete="SET NULL")
    )
