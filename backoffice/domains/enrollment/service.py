# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for managing student class enrollments.

This module provides the EnrollmentService class for:
- Enrolling an existing student in a class
- Cancelling an enrollment
- Removing an enrollment row entirely
- Listing enrollments by class or by student

Every change goes through the capacity ledger in the same transaction,
so ``classes.enrolled`` always equals the number of ACTIVE enrollments.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.domains.audit import AuditLogService, audited
from backoffice.domains.capacity import CapacityLedger
from backoffice.domains.exceptions import (
    AlreadyEnrolledError,
    ClassNotFoundError,
    EnrollmentNotFoundError,
    NotEnrolledError,
    StudentNotFoundError,
)
from backoffice.infrastructure.database.models import Class, Enrollment, Student, row_to_dict
from backoffice.infrastructure.notifications import NotificationDispatcher, NotificationTemplate
from backoffice.models.common import AuditAction, EnrollmentStatus
from backoffice.models.enrollment import EnrollmentResponse, EnrollmentSummary
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


async def open_enrollment(
    db: AsyncSession,
    ledger: CapacityLedger,
    student_id: str,
    class_id: str,
    now: datetime,
) -> Enrollment:
    """Reserve a seat and create or reactivate the enrollment row.

    Runs inside the caller's transaction and does not commit.

    Args:
        db: Session of the enclosing unit of work.
        ledger: Capacity ledger bound to the same session.
        student_id: Student identifier.
        class_id: Class identifier.
        now: Enrollment timestamp.

    Returns:
        The ACTIVE enrollment (pending flush if new).

    Raises:
        AlreadyEnrolledError: If the student is already active in the class.
        ClassNotFoundError, ClassNotEnrollableError, NoSeatsAvailableError:
            From the seat reservation.
    """
    existing_id = (
        await db.execute(
            select(Enrollment.id).where(
                Enrollment.student_id == student_id,
                Enrollment.class_id == class_id,
            )
        )
    ).scalar_one_or_none()

    if existing_id is not None:
        # Guarded so two concurrent re-enrollments cannot both take a seat
        result = await db.execute(
            update(Enrollment)
            .where(Enrollment.id == existing_id, Enrollment.status != EnrollmentStatus.ACTIVE)
            .values(status=EnrollmentStatus.ACTIVE, enrolled_at=now, cancelled_at=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyEnrolledError("Student is already enrolled in this class")

        await ledger.reserve_seat(class_id)
        return (
            await db.execute(
                select(Enrollment)
                .where(Enrollment.id == existing_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()

    await ledger.reserve_seat(class_id)

    enrollment = Enrollment(
        student_id=student_id,
        class_id=class_id,
        status=EnrollmentStatus.ACTIVE,
        enrolled_at=now,
    )
    db.add(enrollment)
    try:
        await db.flush()
    except IntegrityError as e:
        raise AlreadyEnrolledError("Student is already enrolled in this class") from e
    return enrollment


class EnrollmentService:
    """Service for managing student enrollments.

    Attributes:
        db: Async database session.
        notifier: Notification dispatcher, or None to skip notifications.
        audit: Audit log service, or None to skip auditing.
        clock: Source of timestamps.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationDispatcher | None = None,
        audit: AuditLogService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            notifier: Notification dispatcher.
            audit: Audit log service.
            clock: Source of timestamps.
        """
        self.db = db
        self.notifier = notifier
        self.audit = audit
        self.clock = clock
        self.ledger = CapacityLedger(db)

    async def _snapshot(self, student_id: UUID, class_id: UUID, *args, **kwargs) -> dict | None:
        enrollment = await self._get_enrollment(str(student_id), str(class_id))
        return row_to_dict(enrollment) if enrollment else None

    @audited(AuditAction.CREATE, "enrollment")
    async def enroll(self, student_id: UUID, class_id: UUID) -> EnrollmentResponse:
        """Enroll an existing student in a class.

        Args:
            student_id: Student identifier.
            class_id: Class identifier.

        Returns:
            Enrollment response.

        Raises:
            StudentNotFoundError: If student not found.
            ClassNotFoundError: If class not found.
            AlreadyEnrolledError: If student already enrolled.
            ClassNotEnrollableError: If the class is ended or cancelled.
            NoSeatsAvailableError: If the class is full.
        """
        student = await self._get_student(student_id)
        class_ = await self._get_class(class_id)

        try:
            enrollment = await open_enrollment(
                self.db, self.ledger, student.id, class_.id, self.clock()
            )
            student.class_id = class_.id
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Enrolled student: student=%s, class=%s", student_id, class_id)

        self._notify(student, class_.name, NotificationTemplate.ENROLLMENT_CONFIRMED)
        return EnrollmentResponse.model_validate(enrollment)

    @audited(AuditAction.UPDATE, "enrollment", old_state="_snapshot")
    async def cancel(self, student_id: UUID, class_id: UUID) -> EnrollmentResponse:
        """Cancel a student's active enrollment and release the seat.

        Args:
            student_id: Student identifier.
            class_id: Class identifier.

        Returns:
            Updated enrollment.

        Raises:
            NotEnrolledError: If the student has no active enrollment in the class.
        """
        student = await self._get_student(student_id)

        try:
            # Guarded so a concurrent cancel cannot release the seat twice
            result = await self.db.execute(
                update(Enrollment)
                .where(
                    Enrollment.student_id == str(student_id),
                    Enrollment.class_id == str(class_id),
                    Enrollment.status == EnrollmentStatus.ACTIVE,
                )
                .values(status=EnrollmentStatus.CANCELLED, cancelled_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotEnrolledError("Student is not enrolled in this class")

            await self.ledger.release_seat(class_id)

            if student.class_id == str(class_id):
                student.class_id = None

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        enrollment = await self._get_enrollment(str(student_id), str(class_id))

        logger.info("Cancelled enrollment: student=%s, class=%s", student_id, class_id)

        class_ = await self._get_class(class_id)
        self._notify(student, class_.name, NotificationTemplate.ENROLLMENT_CANCELLED)
        return EnrollmentResponse.model_validate(enrollment)

    @audited(AuditAction.DELETE, "enrollment", old_state="_snapshot")
    async def delete(self, student_id: UUID, class_id: UUID) -> None:
        """Remove an enrollment row whatever its status.

        Deleting an ACTIVE enrollment gives its seat back. Attendance
        already recorded for the student is kept.

        Raises:
            EnrollmentNotFoundError: If there is no enrollment to remove.
        """
        sid = str(student_id)
        cid = str(class_id)
        enrollment = await self._get_enrollment(sid, cid)
        if enrollment is None:
            raise EnrollmentNotFoundError(
                "Enrollment not found", {"student_id": sid, "class_id": cid}
            )

        was_active = enrollment.status == EnrollmentStatus.ACTIVE

        try:
            # Guarded on the status read above so a concurrent cancel
            # cannot make the seat come back twice
            result = await self.db.execute(
                delete(Enrollment)
                .where(Enrollment.id == enrollment.id, Enrollment.status == enrollment.status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise EnrollmentNotFoundError(
                    "Enrollment changed concurrently, reload and retry",
                    {"student_id": sid, "class_id": cid},
                )

            if was_active:
                await self.ledger.release_seat(cid)
                await self.db.execute(
                    update(Student)
                    .where(Student.id == sid, Student.class_id == cid)
                    .values(class_id=None)
                    .execution_options(synchronize_session=False)
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Deleted enrollment: student=%s, class=%s, released_seat=%s",
            student_id,
            class_id,
            was_active,
        )

    async def list_by_class(
        self,
        class_id: UUID,
        status: EnrollmentStatus | None = EnrollmentStatus.ACTIVE,
    ) -> list[EnrollmentSummary]:
        """List enrollments of a class with student details.

        Args:
            class_id: Class identifier.
            status: Status filter; None lists every enrollment.

        Raises:
            ClassNotFoundError: If class not found.
        """
        await self._get_class(class_id)

        query = (
            select(Enrollment, Student.name, Student.matricula)
            .join(Student, Student.id == Enrollment.student_id)
            .where(Enrollment.class_id == str(class_id))
        )
        if status:
            query = query.where(Enrollment.status == status)
        query = query.order_by(Student.name)

        result = await self.db.execute(query)
        return [
            EnrollmentSummary(
                id=enrollment.id,
                student_id=enrollment.student_id,
                student_name=name,
                matricula=matricula,
                status=enrollment.status,
                enrolled_at=enrollment.enrolled_at,
            )
            for enrollment, name, matricula in result.all()
        ]

    async def list_by_student(self, student_id: UUID) -> list[EnrollmentResponse]:
        """List every enrollment of a student, newest first.

        Raises:
            StudentNotFoundError: If student not found.
        """
        await self._get_student(student_id)

        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.student_id == str(student_id))
            .order_by(Enrollment.enrolled_at.desc())
        )
        return [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

    def _notify(self, student: Student, class_name: str, template: NotificationTemplate) -> None:
        if self.notifier is None:
            return
        self.notifier.dispatch(
            student.email,
            template,
            {
                "student_name": student.name,
                "class_name": class_name,
                "matricula": student.matricula,
            },
        )

    async def _get_class(self, class_id: UUID) -> Class:
        result = await self.db.execute(
            select(Class)
            .where(Class.id == str(class_id))
            .execution_options(populate_existing=True)
        )
        class_ = result.scalar_one_or_none()

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_

    async def _get_student(self, student_id: UUID) -> Student:
        student = await self.db.get(Student, str(student_id))

        if not student:
            raise StudentNotFoundError(f"Student {student_id} not found")

        return student

    async def _get_enrollment(self, student_id: str, class_id: str) -> Enrollment | None:
        result = await self.db.execute(
            select(Enrollment)
            .where(
                Enrollment.student_id == student_id,
                Enrollment.class_id == class_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
