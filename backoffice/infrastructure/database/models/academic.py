# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course, class and instructor tables."""

from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    enum_column_type,
)
from backoffice.models.common import ClassStatus, Shift


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A course offered by the institution."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    workload_hours: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class Class(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A class (turma) of a course with a fixed number of seats.

    ``enrolled`` is maintained by the capacity ledger and always equals the
    number of ACTIVE enrollments; it never leaves ``0..seats``.
    """

    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("seats >= 0", name="seats_non_negative"),
        CheckConstraint("enrolled >= 0 AND enrolled <= seats", name="enrolled_within_seats"),
    )

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id"), nullable=False, index=True
    )
    shift: Mapped[Shift] = mapped_column(
        enum_column_type(Shift), default=Shift.MORNING, nullable=False
    )
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    seats: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ClassStatus] = mapped_column(
        enum_column_type(ClassStatus), default=ClassStatus.PLANNED, nullable=False, index=True
    )


class Instructor(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An instructor who can be assigned to classes."""

    __tablename__ = "instructors"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class ClassInstructor(Base):
    """Many-to-many link between classes and instructors."""

    __tablename__ = "class_instructors"

    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True
    )
    instructor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("instructors.id", ondelete="CASCADE"), primary_key=True
    )
