# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Back office facade.

This module provides the Backoffice class, the entry point an outer layer
(HTTP handlers, scripts, tests) calls into. It owns the engine, the audit
sink and the notification dispatcher, and gives every call its own
session so no unit of work leaks into another.

Example:
    backoffice = await Backoffice.create()
    with request_context(actor_id=user_id, ip=client_ip):
        result = await backoffice.approve_candidate(candidate_id)
    await backoffice.close()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from backoffice.core.config import Settings, get_settings
from backoffice.domains.attendance import AttendanceService
from backoffice.domains.audit import AuditLogService
from backoffice.domains.candidate import CandidateService
from backoffice.domains.class_ import ClassService
from backoffice.domains.enrollment import EnrollmentService
from backoffice.domains.identity import validate_identity
from backoffice.domains.student import StudentService
from backoffice.infrastructure.database import (
    build_engine,
    build_sessionmaker,
    check_database_connection,
    create_schema,
    get_session,
)
from backoffice.infrastructure.notifications import NotificationDispatcher, NotificationService
from backoffice.models.attendance import (
    AttendanceEntry,
    AttendanceResponse,
    ClassAttendanceReport,
    StudentAttendanceStats,
)
from backoffice.models.audit import AuditLogFilters, AuditLogResponse
from backoffice.models.candidate import (
    ApprovalResult,
    CandidateCreateRequest,
    CandidateResponse,
)
from backoffice.models.class_ import (
    ClassCreateRequest,
    ClassResponse,
    ClassStatistics,
    CourseCreateRequest,
    CourseResponse,
)
from backoffice.models.common import ClassStatus, Shift
from backoffice.models.enrollment import EnrollmentResponse
from backoffice.models.student import (
    StudentCreateRequest,
    StudentFilters,
    StudentResponse,
    StudentUpdateRequest,
)
from backoffice.utils.datetime import Clock, utc_now
from backoffice.utils.logging import setup_logging

logger = logging.getLogger(__name__)


class Backoffice:
    """Composition root and public operations of the back office core.

    Attributes:
        settings: Application settings.
        engine: Async engine shared by every session.
        sessionmaker: Session factory.
        notifier: Notification dispatcher, or None when disabled.
        audit: Audit log service.
        clock: Source of timestamps.
    """

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine,
        sessionmaker: async_sessionmaker[AsyncSession],
        notifier: NotificationDispatcher | None = None,
        audit: AuditLogService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.sessionmaker = sessionmaker
        self.notifier = notifier
        self.audit = audit
        self.clock = clock

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        *,
        notifier: NotificationDispatcher | None = None,
        audit_enabled: bool = True,
        clock: Clock = utc_now,
        create_tables: bool = False,
        configure_logging: bool = False,
    ) -> Backoffice:
        """Build a back office from settings.

        Args:
            settings: Application settings; defaults to get_settings().
            notifier: Dispatcher to use; defaults to an SMTP NotificationService
                when notifications are enabled.
            audit_enabled: Record mutating operations in the audit trail.
            clock: Source of timestamps.
            create_tables: Create missing tables on startup.
            configure_logging: Install the structlog configuration.

        Returns:
            Ready to use Backoffice.
        """
        settings = settings or get_settings()
        if configure_logging:
            setup_logging(settings)

        engine = build_engine(settings)
        sessionmaker = build_sessionmaker(engine)

        if create_tables:
            await create_schema(engine)

        if notifier is None and settings.notification.enabled:
            notifier = NotificationService(settings)

        audit = AuditLogService(sessionmaker, clock=clock) if audit_enabled else None

        logger.info(
            "Back office started: environment=%s, database=%s",
            settings.environment,
            engine.url.get_backend_name(),
        )
        return cls(settings, engine, sessionmaker, notifier=notifier, audit=audit, clock=clock)

    async def close(self) -> None:
        """Wait for pending notifications and release database connections."""
        if isinstance(self.notifier, NotificationService):
            await self.notifier.drain()
        await self.engine.dispose()
        logger.info("Back office stopped")

    async def __aenter__(self) -> Backoffice:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session of one facade call; database failures surface as DatabaseError."""
        async with get_session(self.sessionmaker) as session:
            yield session

    async def check_connection(self) -> bool:
        """Check that the database answers."""
        return await check_database_connection(self.engine)

    def _class_service(self, session: AsyncSession) -> ClassService:
        return ClassService(session, self.notifier, self.audit, self.clock)

    def _candidate_service(self, session: AsyncSession) -> CandidateService:
        return CandidateService(
            session,
            self.notifier,
            self.audit,
            self.clock,
            strict_identity=self.settings.identity.strict_checksum,
            matricula_width=self.settings.enrollment.sequence_width,
        )

    def _student_service(self, session: AsyncSession) -> StudentService:
        return StudentService(
            session,
            self.notifier,
            self.audit,
            self.clock,
            strict_identity=self.settings.identity.strict_checksum,
            matricula_width=self.settings.enrollment.sequence_width,
        )

    # Identity

    def validate_identity(self, raw: str) -> str:
        """Normalize and validate a national ID (CPF)."""
        return validate_identity(raw, strict=self.settings.identity.strict_checksum)

    # Courses and classes

    async def create_course(self, request: CourseCreateRequest) -> CourseResponse:
        async with self._session() as session:
            return await self._class_service(session).create_course(request)

    async def create_class(self, request: ClassCreateRequest) -> ClassResponse:
        async with self._session() as session:
            return await self._class_service(session).create_class(request)

    async def get_class(self, class_id: UUID) -> ClassResponse:
        async with self._session() as session:
            return await self._class_service(session).get_class(class_id)

    async def transition_class(self, class_id: UUID, new_status: ClassStatus) -> ClassResponse:
        """Move a class to another status."""
        async with self._session() as session:
            return await self._class_service(session).transition(class_id, new_status)

    async def delete_class(self, class_id: UUID) -> None:
        async with self._session() as session:
            await self._class_service(session).delete_class(class_id)

    async def class_statistics(self) -> ClassStatistics:
        async with self._session() as session:
            return await self._class_service(session).get_statistics()

    async def has_schedule_conflict(
        self,
        shift: Shift,
        start_date: date | None,
        end_date: date | None,
        exclude_class_id: UUID | None = None,
    ) -> bool:
        """Check for another class in the same shift over overlapping dates."""
        async with self._session() as session:
            return await self._class_service(session).has_schedule_conflict(
                shift, start_date, end_date, exclude_class_id
            )

    # Candidates

    async def create_candidate(self, request: CandidateCreateRequest) -> CandidateResponse:
        async with self._session() as session:
            return await self._candidate_service(session).create(request)

    async def approve_candidate(
        self,
        candidate_id: UUID,
        class_id: UUID | None = None,
    ) -> ApprovalResult:
        """Approve a candidate into the given (or desired) class."""
        async with self._session() as session:
            return await self._candidate_service(session).approve(candidate_id, class_id)

    async def reject_candidate(self, candidate_id: UUID, reason: str | None = None) -> CandidateResponse:
        async with self._session() as session:
            return await self._candidate_service(session).reject(candidate_id, reason)

    async def delete_candidate(self, candidate_id: UUID) -> None:
        async with self._session() as session:
            await self._candidate_service(session).delete(candidate_id)

    async def get_candidate(self, candidate_id: UUID) -> CandidateResponse:
        async with self._session() as session:
            return await self._candidate_service(session).get(candidate_id)

    # Students and enrollments

    async def create_student(self, request: StudentCreateRequest) -> StudentResponse:
        async with self._session() as session:
            return await self._student_service(session).create_student(request)

    async def get_student(self, student_id: UUID) -> StudentResponse:
        async with self._session() as session:
            return await self._student_service(session).get_student(student_id)

    async def update_student(
        self,
        student_id: UUID,
        request: StudentUpdateRequest,
    ) -> StudentResponse:
        async with self._session() as session:
            return await self._student_service(session).update_student(student_id, request)

    async def find_student_by_matricula(self, matricula: str) -> StudentResponse | None:
        async with self._session() as session:
            return await self._student_service(session).find_by_matricula(matricula)

    async def list_students(
        self,
        filters: StudentFilters | None = None,
    ) -> tuple[list[StudentResponse], int]:
        """List students, newest first."""
        async with self._session() as session:
            return await self._student_service(session).list_students(filters)

    async def delete_student(self, student_id: UUID) -> None:
        async with self._session() as session:
            await self._student_service(session).delete_student(student_id)

    async def enroll_student(self, student_id: UUID, class_id: UUID) -> EnrollmentResponse:
        async with self._session() as session:
            service = EnrollmentService(session, self.notifier, self.audit, self.clock)
            return await service.enroll(student_id, class_id)

    async def cancel_enrollment(self, student_id: UUID, class_id: UUID) -> EnrollmentResponse:
        async with self._session() as session:
            service = EnrollmentService(session, self.notifier, self.audit, self.clock)
            return await service.cancel(student_id, class_id)

    async def delete_enrollment(self, student_id: UUID, class_id: UUID) -> None:
        """Remove an enrollment row, giving its seat back if it was active."""
        async with self._session() as session:
            service = EnrollmentService(session, self.notifier, self.audit, self.clock)
            await service.delete(student_id, class_id)

    # Attendance

    async def record_attendance(
        self,
        class_id: UUID,
        session_date: date,
        entries: list[AttendanceEntry],
    ) -> list[AttendanceResponse]:
        """Record a class session's attendance, all or nothing."""
        async with self._session() as session:
            service = AttendanceService(session, self.audit, self.clock)
            return await service.record_batch(class_id, session_date, entries)

    async def class_report(self, class_id: UUID, session_date: date) -> ClassAttendanceReport:
        async with self._session() as session:
            return await AttendanceService(session).get_class_report(class_id, session_date)

    async def student_stats(
        self,
        student_id: UUID,
        class_id: UUID | None = None,
    ) -> StudentAttendanceStats:
        async with self._session() as session:
            return await AttendanceService(session).get_student_stats(student_id, class_id)

    # Audit

    async def list_audit_logs(
        self,
        filters: AuditLogFilters | None = None,
    ) -> tuple[list[AuditLogResponse], int]:
        """List audit entries, newest first."""
        if self.audit is None:
            return [], 0
        return await self.audit.list_logs(filters)
