# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Candidate service for the public application lifecycle.

This module provides the CandidateService class for:
- Candidate registration with national ID validation and uniqueness
- Approval: candidate becomes a student enrolled in a class
- Rejection with a reason
- Deletion of candidates that were never approved
- Listing, statistics and pre-submission uniqueness checks

Approval is a single unit of work. The candidate is claimed with a guarded
update first, so concurrent approvals of the same candidate cannot both
proceed. Then a seat is reserved, a matrícula allocated, and the student and
enrollment created. Any failure rolls all of it back, seat included.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from backoffice.domains.audit import AuditLogService, audited
from backoffice.domains.capacity import CapacityLedger
from backoffice.domains.enrollment.codes import DEFAULT_SEQUENCE_WIDTH, MatriculaAllocator
from backoffice.domains.exceptions import (
    AlreadyApprovedError,
    CandidateNotFoundError,
    CandidateWithoutClassError,
    CannotDeleteApprovedError,
    ClassNotFoundError,
    DuplicateIdentityError,
    InvalidIdentityError,
)
from backoffice.domains.identity import ensure_identity_available, validate_identity
from backoffice.infrastructure.database.models import (
    Candidate,
    Class,
    Enrollment,
    Student,
    row_to_dict,
)
from backoffice.infrastructure.notifications import NotificationDispatcher, NotificationTemplate
from backoffice.models.candidate import (
    ApprovalResult,
    CandidateCreateRequest,
    CandidateFilters,
    CandidateResponse,
    CandidateStatistics,
    CandidateUpdateRequest,
)
from backoffice.models.common import AuditAction, CandidateStatus, EnrollmentStatus
from backoffice.models.student import StudentResponse
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


def _approval_entity_id(result: ApprovalResult, args: tuple, kwargs: dict) -> str:
    return str(result.candidate.id)


class CandidateService:
    """Service for managing candidates.

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
        """Initialize candidate service.

        Args:
            db: Async database session.
            notifier: Notification dispatcher.
            audit: Audit log service.
            clock: Source of timestamps.
            strict_identity: Also verify CPF check digits.
            matricula_width: Zero-padded width of the matrícula sequence.
        """
        self.db = db
        self.notifier = notifier
        self.audit = audit
        self.clock = clock
        self.strict_identity = strict_identity
        self.ledger = CapacityLedger(db)
        self.allocator = MatriculaAllocator(db, clock=clock, width=matricula_width)

    async def _snapshot(self, candidate_id: UUID, *args, **kwargs) -> dict | None:
        result = await self.db.execute(
            select(Candidate).where(Candidate.id == str(candidate_id))
        )
        candidate = result.scalar_one_or_none()
        return row_to_dict(candidate) if candidate else None

    @audited(AuditAction.CREATE, "candidate")
    async def create(self, request: CandidateCreateRequest) -> CandidateResponse:
        """Register a new candidate.

        Args:
            request: Application form data.

        Returns:
            Created candidate in PENDING status.

        Raises:
            InvalidIdentityError: If the national ID is malformed.
            DuplicateIdentityError: If the ID belongs to a candidate or student.
            ClassNotFoundError: If the desired class does not exist.
        """
        cpf = validate_identity(request.cpf, strict=self.strict_identity)
        await ensure_identity_available(self.db, cpf)

        if request.desired_class_id is not None:
            await self._get_class(request.desired_class_id)

        candidate = Candidate(
            cpf=cpf,
            name=request.name,
            email=request.email,
            phone=request.phone,
            desired_class_id=str(request.desired_class_id) if request.desired_class_id else None,
            status=CandidateStatus.PENDING,
        )
        self.db.add(candidate)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateIdentityError(
                "CPF already registered for a candidate", source="candidate"
            ) from e

        logger.info("Created candidate: id=%s", candidate.id)
        return CandidateResponse.model_validate(candidate)

    @audited(AuditAction.UPDATE, "candidate", old_state="_snapshot")
    async def update(self, candidate_id: UUID, request: CandidateUpdateRequest) -> CandidateResponse:
        """Update a candidate's contact data or desired class.

        Status is never changed here.

        Raises:
            CandidateNotFoundError: If candidate not found.
            ClassNotFoundError: If the new desired class does not exist.
        """
        candidate = await self._get_candidate(candidate_id)

        if request.name is not None:
            candidate.name = request.name
        if request.email is not None:
            candidate.email = request.email
        if request.phone is not None:
            candidate.phone = request.phone
        if request.desired_class_id is not None:
            await self._get_class(request.desired_class_id)
            candidate.desired_class_id = str(request.desired_class_id)

        await self.db.commit()

        logger.info("Updated candidate: id=%s", candidate_id)
        return CandidateResponse.model_validate(candidate)

    @audited(
        AuditAction.APPROVE,
        "candidate",
        old_state="_snapshot",
        entity_id=_approval_entity_id,
    )
    async def approve(
        self,
        candidate_id: UUID,
        class_id: UUID | None = None,
    ) -> ApprovalResult:
        """Approve a candidate, turning them into an enrolled student.

        Args:
            candidate_id: Candidate identifier.
            class_id: Target class; defaults to the candidate's desired class.

        Returns:
            The approved candidate, the new student and the matrícula.

        Raises:
            CandidateNotFoundError: If candidate not found.
            AlreadyApprovedError: If the candidate is (or concurrently became) approved.
            CandidateWithoutClassError: If there is no target class.
            ClassNotFoundError: If the target class does not exist.
            ClassNotEnrollableError: If the class is ended or cancelled.
            NoSeatsAvailableError: If the class is full.
            DuplicateIdentityError: If a student already holds the national ID.
        """
        candidate = await self._get_candidate(candidate_id)

        if candidate.status == CandidateStatus.APPROVED:
            raise AlreadyApprovedError(f"Candidate {candidate_id} is already approved")

        target_class_id = str(class_id) if class_id else candidate.desired_class_id
        if target_class_id is None:
            raise CandidateWithoutClassError(
                f"Candidate {candidate_id} has no class to be enrolled in"
            )

        now = self.clock()

        try:
            claim = await self.db.execute(
                update(Candidate)
                .where(
                    Candidate.id == str(candidate_id),
                    Candidate.status != CandidateStatus.APPROVED,
                )
                .values(status=CandidateStatus.APPROVED, rejection_reason=None, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if claim.rowcount != 1:
                raise AlreadyApprovedError(f"Candidate {candidate_id} is already approved")

            await self.ledger.reserve_seat(target_class_id)

            existing_student = await self.db.execute(
                select(Student.id).where(Student.cpf == candidate.cpf)
            )
            if existing_student.first() is not None:
                raise DuplicateIdentityError(
                    "CPF already registered for a student", source="student"
                )

            matricula = await self.allocator.allocate()

            student = Student(
                matricula=matricula,
                cpf=candidate.cpf,
                name=candidate.name,
                email=candidate.email,
                phone=candidate.phone,
                class_id=target_class_id,
                candidate_id=candidate.id,
            )
            self.db.add(student)
            await self.db.flush()

            self.db.add(
                Enrollment(
                    student_id=student.id,
                    class_id=target_class_id,
                    status=EnrollmentStatus.ACTIVE,
                    enrolled_at=now,
                )
            )

            await self.db.execute(
                update(Candidate)
                .where(Candidate.id == str(candidate_id))
                .values(student_id=student.id)
                .execution_options(synchronize_session=False)
            )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        candidate = await self._get_candidate(candidate_id)
        class_name = (
            await self.db.execute(select(Class.name).where(Class.id == target_class_id))
        ).scalar_one()

        logger.info(
            "Approved candidate: id=%s, student=%s, matricula=%s, class=%s",
            candidate_id,
            student.id,
            matricula,
            target_class_id,
        )

        if self.notifier is not None:
            self.notifier.dispatch(
                student.email,
                NotificationTemplate.ENROLLMENT_CONFIRMED,
                {
                    "student_name": student.name,
                    "class_name": class_name,
                    "matricula": matricula,
                },
            )

        return ApprovalResult(
            candidate=CandidateResponse.model_validate(candidate),
            student=StudentResponse.model_validate(student),
            class_id=target_class_id,
            matricula=matricula,
        )

    @audited(AuditAction.REJECT, "candidate", old_state="_snapshot")
    async def reject(self, candidate_id: UUID, reason: str | None = None) -> CandidateResponse:
        """Reject a candidate.

        Rejecting an already rejected candidate updates the reason.

        Args:
            candidate_id: Candidate identifier.
            reason: Why the candidate was rejected.

        Raises:
            CandidateNotFoundError: If candidate not found.
            AlreadyApprovedError: If the candidate is approved.
        """
        await self._get_candidate(candidate_id)

        result = await self.db.execute(
            update(Candidate)
            .where(
                Candidate.id == str(candidate_id),
                Candidate.status != CandidateStatus.APPROVED,
            )
            .values(
                status=CandidateStatus.REJECTED,
                rejection_reason=reason,
                updated_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise AlreadyApprovedError(f"Candidate {candidate_id} is already approved")

        await self.db.commit()

        logger.info("Rejected candidate: id=%s", candidate_id)
        return CandidateResponse.model_validate(await self._get_candidate(candidate_id))

    @audited(AuditAction.DELETE, "candidate", old_state="_snapshot")
    async def delete(self, candidate_id: UUID) -> None:
        """Delete a candidate that was never approved.

        Raises:
            CandidateNotFoundError: If candidate not found.
            CannotDeleteApprovedError: If the candidate is approved.
        """
        candidate = await self._get_candidate(candidate_id)

        if candidate.status == CandidateStatus.APPROVED:
            raise CannotDeleteApprovedError(
                f"Candidate {candidate_id} is approved and cannot be deleted"
            )

        await self.db.delete(candidate)
        await self.db.commit()

        logger.info("Deleted candidate: id=%s", candidate_id)

    async def get(self, candidate_id: UUID) -> CandidateResponse:
        """Get candidate by ID.

        Raises:
            CandidateNotFoundError: If candidate not found.
        """
        return CandidateResponse.model_validate(await self._get_candidate(candidate_id))

    async def list_candidates(
        self,
        filters: CandidateFilters | None = None,
    ) -> tuple[list[CandidateResponse], int]:
        """List candidates, newest first.

        Args:
            filters: Optional status/class/name filters and pagination.

        Returns:
            Tuple of (candidates, total matching count).
        """
        filters = filters or CandidateFilters()

        conditions = []
        if filters.status:
            conditions.append(Candidate.status == filters.status)
        if filters.desired_class_id:
            conditions.append(Candidate.desired_class_id == str(filters.desired_class_id))
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(Candidate.name.ilike(pattern), Candidate.cpf.like(pattern)))

        total = (
            await self.db.execute(
                select(func.count()).select_from(Candidate).where(*conditions)
            )
        ).scalar_one()

        result = await self.db.execute(
            select(Candidate)
            .where(*conditions)
            .order_by(Candidate.created_at.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        )
        items = [CandidateResponse.model_validate(c) for c in result.scalars().all()]
        return items, total

    async def get_statistics(self) -> CandidateStatistics:
        """Count candidates by status and by desired class name."""
        by_status = await self.db.execute(
            select(Candidate.status, func.count()).group_by(Candidate.status)
        )
        status_counts = {status: count for status, count in by_status.all()}

        by_class = await self.db.execute(
            select(Class.name, func.count(Candidate.id))
            .join(Class, Class.id == Candidate.desired_class_id)
            .group_by(Class.name)
        )
        class_counts = {name: count for name, count in by_class.all()}

        return CandidateStatistics(
            total=sum(status_counts.values()),
            by_status={status: status_counts.get(status, 0) for status in CandidateStatus},
            by_class=class_counts,
        )

    async def validate_unique_fields(
        self,
        cpf: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        exclude_candidate_id: UUID | None = None,
    ) -> list[str]:
        """Check form fields before submission.

        Args:
            cpf: National ID as typed.
            email: Email address.
            phone: Phone number.
            exclude_candidate_id: Candidate being edited, if any.

        Returns:
            Human-readable problems; empty when everything is free.
        """
        errors: list[str] = []
        exclude = str(exclude_candidate_id) if exclude_candidate_id else None

        if cpf:
            try:
                normalized = validate_identity(cpf, strict=self.strict_identity)
                await ensure_identity_available(self.db, normalized, exclude_candidate_id=exclude)
            except (InvalidIdentityError, DuplicateIdentityError) as e:
                errors.append(e.message)

        if email and await self._field_taken(Candidate.email, Student.email, email, exclude):
            errors.append("Email already registered")

        if phone and await self._field_taken(Candidate.phone, Student.phone, phone, exclude):
            errors.append("Phone already registered")

        return errors

    async def _field_taken(
        self,
        candidate_column: InstrumentedAttribute[str | None],
        student_column: InstrumentedAttribute[str | None],
        value: str,
        exclude: str | None,
    ) -> bool:
        query = select(Candidate.id).where(candidate_column == value)
        if exclude:
            query = query.where(Candidate.id != exclude)
        if (await self.db.execute(query)).first() is not None:
            return True
        result = await self.db.execute(select(Student.id).where(student_column == value))
        return result.first() is not None

    async def _get_candidate(self, candidate_id: UUID) -> Candidate:
        """Get candidate by ID, bypassing stale identity-map state.

        Raises:
            CandidateNotFoundError: If not found.
        """
        result = await self.db.execute(
            select(Candidate)
            .where(Candidate.id == str(candidate_id))
            .execution_options(populate_existing=True)
        )
        candidate = result.scalar_one_or_none()

        if not candidate:
            raise CandidateNotFoundError(f"Candidate {candidate_id} not found")

        return candidate

    async def _get_class(self, class_id: UUID) -> Class:
        class_ = await self.db.get(Class, str(class_id))

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_
