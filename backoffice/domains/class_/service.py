# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for managing courses, classes and class status.

This module provides the ClassService class for:
- Course and class creation
- Class updates with seat-count protection
- Status transitions with their side effects:
  ending a class notifies its students, cancelling it also cancels every
  active enrollment and gives the seats back
- Deleting classes that no longer hold active enrollments
- Statistics and schedule conflict checks
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.domains.audit import AuditLogService, audited
from backoffice.domains.capacity import CapacityLedger
from backoffice.domains.class_.state_machine import TransitionEffect, resolve_transition
from backoffice.domains.exceptions import (
    ClassHasEnrollmentsError,
    ClassNameExistsError,
    ClassNotFoundError,
    CourseNotFoundError,
    IllegalTransitionError,
    InvalidCapacityError,
    InvalidClassDatesError,
)
from backoffice.infrastructure.database.models import (
    Attendance,
    Candidate,
    Class,
    ClassInstructor,
    Course,
    Enrollment,
    Student,
    row_to_dict,
)
from backoffice.infrastructure.notifications import NotificationDispatcher, NotificationTemplate
from backoffice.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassStatistics,
    ClassUpdateRequest,
    CourseCreateRequest,
    CourseResponse,
    SeatAvailability,
)
from backoffice.models.common import AuditAction, ClassStatus, EnrollmentStatus, Shift
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

INITIAL_STATUSES = (ClassStatus.PLANNED, ClassStatus.ACTIVE)


@dataclass
class _Recipient:
    email: str | None
    name: str


class ClassService:
    """Service for managing classes.

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
        """Initialize class service.

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

    async def _snapshot(self, class_id: UUID, *args, **kwargs) -> dict | None:
        class_ = await self.db.get(Class, str(class_id))
        return row_to_dict(class_) if class_ else None

    @audited(AuditAction.CREATE, "course")
    async def create_course(self, request: CourseCreateRequest) -> CourseResponse:
        """Create a new course."""
        course = Course(
            name=request.name,
            workload_hours=request.workload_hours,
            description=request.description,
        )
        self.db.add(course)
        await self.db.commit()

        logger.info("Created course: id=%s, name=%s", course.id, course.name)
        return CourseResponse.model_validate(course)

    @audited(AuditAction.CREATE, "class")
    async def create_class(self, request: ClassCreateRequest) -> ClassResponse:
        """Create a new class.

        Args:
            request: Class creation data.

        Returns:
            Created class.

        Raises:
            CourseNotFoundError: If course not found.
            ClassNameExistsError: If the name is taken.
            InvalidClassDatesError: If end date is not after start date.
            IllegalTransitionError: If the initial status is ENDED or CANCELLED.
        """
        course = await self.db.get(Course, str(request.course_id))
        if not course:
            raise CourseNotFoundError(f"Course {request.course_id} not found")

        await self._check_name_available(request.name)
        self._check_dates(request.start_date, request.end_date)

        if request.status not in INITIAL_STATUSES:
            raise IllegalTransitionError(
                "New classes must start PLANNED or ACTIVE",
                current="NONE",
                requested=request.status.name,
            )

        class_ = Class(
            name=request.name,
            course_id=str(request.course_id),
            shift=request.shift,
            seats=request.seats,
            enrolled=0,
            status=request.status,
            start_date=request.start_date,
            end_date=request.end_date,
        )
        self.db.add(class_)
        await self.db.commit()

        logger.info(
            "Created class: id=%s, name=%s, seats=%d",
            class_.id,
            class_.name,
            class_.seats,
        )
        return ClassResponse.model_validate(class_)

    @audited(AuditAction.UPDATE, "class", old_state="_snapshot")
    async def update_class(self, class_id: UUID, request: ClassUpdateRequest) -> ClassResponse:
        """Update class fields other than status.

        Args:
            class_id: Class identifier.
            request: Fields to change.

        Returns:
            Updated class.

        Raises:
            ClassNotFoundError: If class not found.
            ClassNameExistsError: If the new name is taken.
            InvalidClassDatesError: If end date is not after start date.
            InvalidCapacityError: If seats would drop below enrolled.
        """
        class_ = await self._get_class(class_id)

        if request.name is not None and request.name != class_.name:
            await self._check_name_available(request.name)
            class_.name = request.name

        start_date = request.start_date if request.start_date is not None else class_.start_date
        end_date = request.end_date if request.end_date is not None else class_.end_date
        self._check_dates(start_date, end_date)
        class_.start_date = start_date
        class_.end_date = end_date

        if request.shift is not None:
            class_.shift = request.shift

        await self.db.flush()

        if request.seats is not None and request.seats != class_.seats:
            # Guarded so a concurrent reservation cannot push enrolled past seats
            result = await self.db.execute(
                update(Class)
                .where(Class.id == str(class_id), Class.enrolled <= request.seats)
                .values(seats=request.seats)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                raise InvalidCapacityError(
                    "Seats cannot be lower than the number of enrolled students",
                    {"seats": request.seats},
                )

        await self.db.commit()

        class_ = await self._get_class(class_id)
        logger.info("Updated class: id=%s", class_id)
        return ClassResponse.model_validate(class_)

    async def get_class(self, class_id: UUID) -> ClassResponse:
        """Get class by ID.

        Raises:
            ClassNotFoundError: If class not found.
        """
        return ClassResponse.model_validate(await self._get_class(class_id))

    async def list_classes(
        self,
        status: ClassStatus | None = None,
        course_id: UUID | None = None,
    ) -> list[ClassResponse]:
        """List classes ordered by name."""
        query = select(Class)
        if status:
            query = query.where(Class.status == status)
        if course_id:
            query = query.where(Class.course_id == str(course_id))
        query = query.order_by(Class.name)

        result = await self.db.execute(query)
        return [ClassResponse.model_validate(c) for c in result.scalars().all()]

    async def get_availability(self, class_id: UUID) -> SeatAvailability:
        """Get seat usage of a class."""
        return await self.ledger.get_availability(class_id)

    @audited(AuditAction.UPDATE, "class", old_state="_snapshot")
    async def transition(self, class_id: UUID, new_status: ClassStatus) -> ClassResponse:
        """Move a class to a new status and run the transition's side effects.

        The status change and any enrollment cancellations commit together.
        Student notifications go out after the commit.

        Args:
            class_id: Class identifier.
            new_status: Requested status.

        Returns:
            Updated class.

        Raises:
            ClassNotFoundError: If class not found.
            IllegalTransitionError: If the transition is not allowed.
        """
        new_status = ClassStatus(new_status)
        class_ = await self._get_class(class_id)
        current = class_.status
        effect = resolve_transition(current, new_status)

        # Guarded on the status we validated against; also takes the row lock
        result = await self.db.execute(
            update(Class)
            .where(Class.id == str(class_id), Class.status == current)
            .values(status=new_status, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise IllegalTransitionError(
                "Class status changed concurrently, reload and retry",
                current=current.name,
                requested=new_status.name,
            )

        recipients: list[_Recipient] = []
        template: NotificationTemplate | None = None

        if effect == TransitionEffect.NOTIFY_ENDED:
            recipients = await self._active_recipients(class_id)
            template = NotificationTemplate.CLASS_ENDED
        elif effect == TransitionEffect.CANCEL_ENROLLMENTS:
            recipients = await self._cancel_active_enrollments(class_id)
            template = NotificationTemplate.CLASS_CANCELLED

        await self.db.commit()

        logger.info(
            "Class status changed: id=%s, %s -> %s, affected_students=%d",
            class_id,
            current.name,
            new_status.name,
            len(recipients),
        )

        class_ = await self._get_class(class_id)
        if template is not None:
            self._notify(recipients, template, class_.name)

        return ClassResponse.model_validate(class_)

    @audited(AuditAction.DELETE, "class", old_state="_snapshot")
    async def delete_class(self, class_id: UUID) -> None:
        """Delete a class without active enrollments.

        Cancelled and completed enrollments, attendance and instructor
        assignments of the class are removed with it. Candidates who
        wanted the class keep their application without a desired class.

        Raises:
            ClassNotFoundError: If class not found.
            ClassHasEnrollmentsError: If any seat is still taken.
        """
        class_ = await self._get_class(class_id)
        cid = class_.id

        try:
            # Guarded on the seat counter; also takes the row lock so no
            # reservation can land between the check and the delete
            result = await self.db.execute(
                update(Class)
                .where(Class.id == cid, Class.enrolled == 0)
                .values(updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ClassHasEnrollmentsError(
                    "Class still has active enrollments",
                    {"class_id": cid},
                )

            await self.db.execute(delete(Attendance).where(Attendance.class_id == cid))
            await self.db.execute(delete(Enrollment).where(Enrollment.class_id == cid))
            await self.db.execute(delete(ClassInstructor).where(ClassInstructor.class_id == cid))
            await self.db.execute(
                update(Candidate)
                .where(Candidate.desired_class_id == cid)
                .values(desired_class_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(Student)
                .where(Student.class_id == cid)
                .values(class_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(delete(Class).where(Class.id == cid))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Deleted class: id=%s, name=%s", cid, class_.name)

    async def get_statistics(self) -> ClassStatistics:
        """Count classes by status and shift, with total seat usage."""
        by_status = await self.db.execute(
            select(Class.status, func.count()).group_by(Class.status)
        )
        status_counts = {status: count for status, count in by_status.all()}

        by_shift = await self.db.execute(
            select(Class.shift, func.count()).group_by(Class.shift)
        )
        shift_counts = {shift: count for shift, count in by_shift.all()}

        seats, enrolled = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(Class.seats), 0),
                    func.coalesce(func.sum(Class.enrolled), 0),
                )
            )
        ).one()

        return ClassStatistics(
            total=sum(status_counts.values()),
            by_status={status: status_counts.get(status, 0) for status in ClassStatus},
            by_shift={shift: shift_counts.get(shift, 0) for shift in Shift},
            seats=seats,
            enrolled=enrolled,
        )

    async def has_schedule_conflict(
        self,
        shift: Shift,
        start_date: date | None,
        end_date: date | None,
        exclude_class_id: UUID | None = None,
    ) -> bool:
        """Check whether another class meets in the same shift over overlapping dates.

        Cancelled classes and classes without both dates never conflict.
        Ranges touching on a single day overlap.

        Args:
            shift: Shift of the class being planned.
            start_date: First day of the class.
            end_date: Last day of the class.
            exclude_class_id: Class being edited, if any.

        Returns:
            True if at least one class overlaps.
        """
        if start_date is None or end_date is None:
            return False

        query = select(Class.id).where(
            Class.shift == Shift(shift),
            Class.status != ClassStatus.CANCELLED,
            Class.start_date <= end_date,
            Class.end_date >= start_date,
        )
        if exclude_class_id is not None:
            query = query.where(Class.id != str(exclude_class_id))

        return (await self.db.execute(query.limit(1))).first() is not None

    async def _cancel_active_enrollments(self, class_id: UUID) -> list[_Recipient]:
        """Cancel every active enrollment of a class and release the seats."""
        recipients = await self._active_recipients(class_id)
        now = self.clock()

        result = await self.db.execute(
            update(Enrollment)
            .where(
                Enrollment.class_id == str(class_id),
                Enrollment.status == EnrollmentStatus.ACTIVE,
            )
            .values(status=EnrollmentStatus.CANCELLED, cancelled_at=now)
            .execution_options(synchronize_session=False)
        )
        cancelled = result.rowcount

        await self.db.execute(
            update(Student)
            .where(Student.class_id == str(class_id))
            .values(class_id=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        if cancelled:
            await self.ledger.release_seat(class_id, cancelled)

        logger.info("Cancelled %d enrollment(s) of class %s", cancelled, class_id)
        return recipients

    async def _active_recipients(self, class_id: UUID) -> list[_Recipient]:
        result = await self.db.execute(
            select(Student.email, Student.name)
            .join(Enrollment, Enrollment.student_id == Student.id)
            .where(
                Enrollment.class_id == str(class_id),
                Enrollment.status == EnrollmentStatus.ACTIVE,
            )
        )
        return [_Recipient(email=row.email, name=row.name) for row in result.all()]

    def _notify(
        self,
        recipients: list[_Recipient],
        template: NotificationTemplate,
        class_name: str,
    ) -> None:
        if self.notifier is None:
            return
        for recipient in recipients:
            self.notifier.dispatch(
                recipient.email,
                template,
                {"student_name": recipient.name, "class_name": class_name},
            )

    async def _get_class(self, class_id: UUID) -> Class:
        """Get class by ID, bypassing stale identity-map state.

        Raises:
            ClassNotFoundError: If not found.
        """
        result = await self.db.execute(
            select(Class)
            .where(Class.id == str(class_id))
            .execution_options(populate_existing=True)
        )
        class_ = result.scalar_one_or_none()

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_

    async def _check_name_available(self, name: str) -> None:
        result = await self.db.execute(
            select(func.count()).select_from(Class).where(Class.name == name)
        )
        if result.scalar_one() > 0:
            raise ClassNameExistsError(f"Class name '{name}' already exists")

    @staticmethod
    def _check_dates(start_date, end_date) -> None:
        if start_date and end_date and end_date <= start_date:
            raise InvalidClassDatesError(
                "End date must be after start date",
                {"start_date": str(start_date), "end_date": str(end_date)},
            )
