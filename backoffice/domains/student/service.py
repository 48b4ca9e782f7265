# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student service for direct (staff) registration and removal.

Students normally come from candidate approval. This service covers the
non-public path: creating a student directly, optionally placing them in a
class, correcting their data, looking them up, and deleting a student
together with their class membership.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.domains.audit import AuditLogService, audited
from backoffice.domains.capacity import CapacityLedger
from backoffice.domains.enrollment.codes import DEFAULT_SEQUENCE_WIDTH, MatriculaAllocator
from backoffice.domains.enrollment.service import open_enrollment
from backoffice.domains.exceptions import (
    ClassNotFoundError,
    DuplicateIdentityError,
    StudentNotFoundError,
)
from backoffice.domains.identity import (
    ensure_identity_available,
    normalize_identity,
    validate_identity,
)
from backoffice.infrastructure.database.models import (
    Attendance,
    Candidate,
    Class,
    Enrollment,
    Student,
    row_to_dict,
)
from backoffice.infrastructure.notifications import NotificationDispatcher, NotificationTemplate
from backoffice.models.common import AuditAction, EnrollmentStatus
from backoffice.models.student import (
    StudentCreateRequest,
    StudentFilters,
    StudentResponse,
    StudentUpdateRequest,
)
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class StudentService:
    """Service for managing students outside the approval flow.

    Attributes:
        db: Async database session.
        notifier: Notification dispatcher, or None to skip notifications.
        audit: Audit log service, or None to skip auditing.
        clock: Source of timestamps and of the matrícula year.
        strict_identity: Also verify CPF check digits.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationDispatcher | None = None,
        audit: AuditLogService | None = None,
        clock: Clock = utc_now,
        strict_identity: bool = False,
        matricula_width: int = DEFAULT_SEQUENCE_WIDTH,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self.audit = audit
        self.clock = clock
        self.strict_identity = strict_identity
        self.ledger = CapacityLedger(db)
        self.allocator = MatriculaAllocator(db, clock=clock, width=matricula_width)

    async def _snapshot(self, student_id: UUID, *args, **kwargs) -> dict | None:
        student = await self.db.get(Student, str(student_id))
        return row_to_dict(student) if student else None

    @audited(AuditAction.CREATE, "student")
    async def create_student(self, request: StudentCreateRequest) -> StudentResponse:
        """Register a student directly.

        When a class is given, a seat is reserved and the enrollment created
        in the same transaction as the student.

        Args:
            request: Student data.

        Returns:
            Created student with its matrícula.

        Raises:
            InvalidIdentityError: If the national ID is malformed.
            DuplicateIdentityError: If the ID belongs to a candidate or student.
            ClassNotFoundError: If the class does not exist.
            ClassNotEnrollableError: If the class is ended or cancelled.
            NoSeatsAvailableError: If the class is full.
        """
        cpf = validate_identity(request.cpf, strict=self.strict_identity)
        await ensure_identity_available(self.db, cpf)

        class_name: str | None = None
        if request.class_id is not None:
            class_ = await self.db.get(Class, str(request.class_id))
            if not class_:
                raise ClassNotFoundError(f"Class {request.class_id} not found")
            class_name = class_.name

        try:
            matricula = await self.allocator.allocate()

            student = Student(
                matricula=matricula,
                cpf=cpf,
                name=request.name,
                email=request.email,
                phone=request.phone,
                class_id=str(request.class_id) if request.class_id else None,
            )
            self.db.add(student)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise DuplicateIdentityError(
                    "CPF already registered for a student", source="student"
                ) from e

            if request.class_id is not None:
                await open_enrollment(
                    self.db, self.ledger, student.id, str(request.class_id), self.clock()
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Created student: id=%s, matricula=%s", student.id, matricula)

        if class_name is not None and self.notifier is not None:
            self.notifier.dispatch(
                student.email,
                NotificationTemplate.ENROLLMENT_CONFIRMED,
                {
                    "student_name": student.name,
                    "class_name": class_name,
                    "matricula": matricula,
                },
            )

        return StudentResponse.model_validate(student)

    async def get_student(self, student_id: UUID) -> StudentResponse:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student not found.
        """
        return StudentResponse.model_validate(await self._get_student(student_id))

    @audited(AuditAction.UPDATE, "student", old_state="_snapshot")
    async def update_student(
        self,
        student_id: UUID,
        request: StudentUpdateRequest,
    ) -> StudentResponse:
        """Correct a student's identity or contact data.

        A changed national ID is validated and checked against every other
        candidate and student. The originating candidate, if any, keeps the
        same ID as the student.

        Raises:
            StudentNotFoundError: If student not found.
            InvalidIdentityError: If the new national ID is malformed.
            DuplicateIdentityError: If the new ID belongs to someone else.
        """
        student = await self._get_student(student_id)

        try:
            if request.cpf is not None:
                cpf = validate_identity(request.cpf, strict=self.strict_identity)
                if cpf != student.cpf:
                    await ensure_identity_available(
                        self.db,
                        cpf,
                        exclude_candidate_id=student.candidate_id,
                        exclude_student_id=student.id,
                    )
                    student.cpf = cpf
                    if student.candidate_id is not None:
                        await self.db.execute(
                            update(Candidate)
                            .where(Candidate.id == student.candidate_id)
                            .values(cpf=cpf)
                            .execution_options(synchronize_session=False)
                        )

            if request.name is not None:
                student.name = request.name
            if request.email is not None:
                student.email = request.email
            if request.phone is not None:
                student.phone = request.phone

            try:
                await self.db.flush()
            except IntegrityError as e:
                raise DuplicateIdentityError(
                    "CPF already registered for a student", source="student"
                ) from e

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Updated student: id=%s", student_id)
        return StudentResponse.model_validate(student)

    async def find_by_matricula(self, matricula: str) -> StudentResponse | None:
        """Find a student by matrícula, or None."""
        result = await self.db.execute(select(Student).where(Student.matricula == matricula))
        student = result.scalar_one_or_none()
        return StudentResponse.model_validate(student) if student else None

    async def list_students(
        self,
        filters: StudentFilters | None = None,
    ) -> tuple[list[StudentResponse], int]:
        """List students, newest first.

        Name, email and matrícula match partially; the national ID matches
        exactly after normalization.

        Returns:
            Tuple of (students, total matching count).
        """
        filters = filters or StudentFilters()

        conditions = []
        if filters.name:
            conditions.append(Student.name.ilike(f"%{filters.name}%"))
        if filters.cpf:
            conditions.append(Student.cpf == normalize_identity(filters.cpf))
        if filters.email:
            conditions.append(Student.email.ilike(f"%{filters.email}%"))
        if filters.matricula:
            conditions.append(Student.matricula.like(f"%{filters.matricula}%"))

        total = (
            await self.db.execute(
                select(func.count()).select_from(Student).where(*conditions)
            )
        ).scalar_one()

        result = await self.db.execute(
            select(Student)
            .where(*conditions)
            .order_by(Student.created_at.desc(), Student.matricula.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        )
        items = [StudentResponse.model_validate(s) for s in result.scalars().all()]
        return items, total

    @audited(AuditAction.DELETE, "student", old_state="_snapshot")
    async def delete_student(self, student_id: UUID) -> None:
        """Delete a student and their class membership.

        Active enrollments are cancelled first so their seats go back to
        the classes. Attendance and enrollment rows are removed and the
        originating candidate is unlinked (it stays APPROVED).

        Raises:
            StudentNotFoundError: If student not found.
        """
        student = await self._get_student(student_id)
        sid = student.id

        try:
            active_class_ids = (
                await self.db.execute(
                    select(Enrollment.class_id).where(
                        Enrollment.student_id == sid,
                        Enrollment.status == EnrollmentStatus.ACTIVE,
                    )
                )
            ).scalars().all()

            for class_id in active_class_ids:
                result = await self.db.execute(
                    update(Enrollment)
                    .where(
                        Enrollment.student_id == sid,
                        Enrollment.class_id == class_id,
                        Enrollment.status == EnrollmentStatus.ACTIVE,
                    )
                    .values(status=EnrollmentStatus.CANCELLED, cancelled_at=self.clock())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    await self.ledger.release_seat(class_id)

            await self.db.execute(delete(Attendance).where(Attendance.student_id == sid))
            await self.db.execute(delete(Enrollment).where(Enrollment.student_id == sid))
            await self.db.execute(
                update(Candidate)
                .where(Candidate.student_id == sid)
                .values(student_id=None)
                .execution_options(synchronize_session=False)
            )

            await self.db.delete(student)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Deleted student: id=%s, released_seats=%d",
            student_id,
            len(active_class_ids),
        )

    async def _get_student(self, student_id: UUID) -> Student:
        student = await self.db.get(Student, str(student_id))

        if not student:
            raise StudentNotFoundError(f"Student {student_id} not found")

        return student
