# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance service for recording and reporting class attendance.

This module provides the AttendanceService class for:
- Recording a whole class session in one all-or-nothing batch
- Correcting or removing single attendance rows
- Class reports that show every enrolled student, recorded or not
- Per-student attendance statistics

Rows are written with a native upsert on (student, class, date), so two
batches for the same session never produce duplicates; the later one wins.
"""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.domains.audit import AuditLogService, audited
from backoffice.domains.exceptions import (
    AttendanceNotFoundError,
    ClassNotFoundError,
    NotEnrolledError,
    StudentNotFoundError,
)
from backoffice.infrastructure.database import dialect_insert
from backoffice.infrastructure.database.models import (
    Attendance,
    Class,
    Enrollment,
    Student,
    new_id,
    row_to_dict,
)
from backoffice.models.attendance import (
    AttendanceEntry,
    AttendanceFilters,
    AttendanceResponse,
    ClassAttendanceReport,
    ClassReportRow,
    StudentAttendanceStats,
)
from backoffice.models.common import (
    AttendanceStatus,
    AuditAction,
    EnrollmentStatus,
    ReportAttendanceStatus,
)
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class AttendanceService:
    """Service for managing attendance.

    Attributes:
        db: Async database session.
        audit: Audit log service, or None to skip auditing.
        clock: Source of timestamps.
    """

    def __init__(
        self,
        db: AsyncSession,
        audit: AuditLogService | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize attendance service.

        Args:
            db: Async database session.
            audit: Audit log service.
            clock: Source of timestamps.
        """
        self.db = db
        self.audit = audit
        self.clock = clock

    async def _snapshot(self, attendance_id: UUID, *args, **kwargs) -> dict | None:
        attendance = await self.db.get(Attendance, str(attendance_id))
        return row_to_dict(attendance) if attendance else None

    async def _batch_snapshot(
        self,
        class_id: UUID,
        session_date: date,
        entries: list[AttendanceEntry],
        *args,
        **kwargs,
    ) -> dict | None:
        """Rows of the session that the batch is about to overwrite."""
        student_ids = [str(entry.student_id) for entry in entries]
        if not student_ids:
            return None
        result = await self.db.execute(
            select(Attendance).where(
                Attendance.class_id == str(class_id),
                Attendance.date == session_date,
                Attendance.student_id.in_(student_ids),
            )
        )
        rows = [row_to_dict(a) for a in result.scalars().all()]
        return {"items": rows} if rows else None

    @audited(
        AuditAction.CREATE,
        "attendance",
        old_state="_batch_snapshot",
        overwrite_action=AuditAction.UPDATE,
    )
    async def record_batch(
        self,
        class_id: UUID,
        session_date: date,
        entries: list[AttendanceEntry],
    ) -> list[AttendanceResponse]:
        """Record attendance of many students for one class session.

        Every entry is validated before anything is written. A student
        listed twice keeps the last status given.

        Args:
            class_id: Class identifier.
            session_date: Date of the session.
            entries: Student statuses.

        Returns:
            The stored rows, in entry order.

        Raises:
            ClassNotFoundError: If class not found.
            StudentNotFoundError: If any student does not exist.
            NotEnrolledError: If any student has no active enrollment in the class.
        """
        cid = str(class_id)
        await self._get_class(class_id)

        statuses: dict[str, AttendanceStatus] = {}
        for entry in entries:
            statuses[str(entry.student_id)] = AttendanceStatus(entry.status)

        if not statuses:
            return []

        student_ids = list(statuses)

        try:
            await self._check_students(cid, student_ids)

            now = self.clock()
            rows = [
                {
                    "id": new_id(),
                    "student_id": sid,
                    "class_id": cid,
                    "date": session_date,
                    "status": status,
                    "created_at": now,
                    "updated_at": now,
                }
                for sid, status in statuses.items()
            ]

            insert = dialect_insert(self.db)
            stmt = insert(Attendance).values(rows)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Attendance.student_id, Attendance.class_id, Attendance.date],
                set_={"status": stmt.excluded.status, "updated_at": stmt.excluded.updated_at},
            )
            await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        result = await self.db.execute(
            select(Attendance)
            .where(
                Attendance.class_id == cid,
                Attendance.date == session_date,
                Attendance.student_id.in_(student_ids),
            )
            .execution_options(populate_existing=True)
        )
        stored = {a.student_id: a for a in result.scalars().all()}

        logger.info(
            "Recorded attendance: class=%s, date=%s, students=%d",
            class_id,
            session_date,
            len(stored),
        )
        return [AttendanceResponse.model_validate(stored[sid]) for sid in student_ids]

    async def record(
        self,
        class_id: UUID,
        student_id: UUID,
        session_date: date,
        status: AttendanceStatus,
    ) -> AttendanceResponse:
        """Record attendance of a single student."""
        rows = await self.record_batch(
            class_id,
            session_date,
            [AttendanceEntry(student_id=student_id, status=status)],
        )
        return rows[0]

    @audited(AuditAction.UPDATE, "attendance", old_state="_snapshot")
    async def update_status(
        self,
        attendance_id: UUID,
        status: AttendanceStatus,
    ) -> AttendanceResponse:
        """Correct the status of a recorded row.

        Raises:
            AttendanceNotFoundError: If the row does not exist.
        """
        attendance = await self._get_attendance(attendance_id)
        attendance.status = AttendanceStatus(status)
        await self.db.commit()

        logger.info("Updated attendance: id=%s, status=%s", attendance_id, attendance.status.name)
        return AttendanceResponse.model_validate(attendance)

    @audited(AuditAction.DELETE, "attendance", old_state="_snapshot")
    async def delete(self, attendance_id: UUID) -> None:
        """Delete a recorded row.

        Raises:
            AttendanceNotFoundError: If the row does not exist.
        """
        attendance = await self._get_attendance(attendance_id)
        await self.db.delete(attendance)
        await self.db.commit()

        logger.info("Deleted attendance: id=%s", attendance_id)

    async def list_attendance(
        self,
        filters: AttendanceFilters | None = None,
    ) -> tuple[list[AttendanceResponse], int]:
        """List attendance rows, most recent date first.

        Returns:
            Tuple of (rows, total matching count).
        """
        filters = filters or AttendanceFilters()

        conditions = []
        if filters.class_id:
            conditions.append(Attendance.class_id == str(filters.class_id))
        if filters.student_id:
            conditions.append(Attendance.student_id == str(filters.student_id))
        if filters.date_from:
            conditions.append(Attendance.date >= filters.date_from)
        if filters.date_to:
            conditions.append(Attendance.date <= filters.date_to)
        if filters.status:
            conditions.append(Attendance.status == filters.status)

        total = (
            await self.db.execute(
                select(func.count()).select_from(Attendance).where(*conditions)
            )
        ).scalar_one()

        result = await self.db.execute(
            select(Attendance)
            .where(*conditions)
            .order_by(Attendance.date.desc(), Attendance.student_id)
            .limit(filters.limit)
            .offset(filters.offset)
        )
        items = [AttendanceResponse.model_validate(a) for a in result.scalars().all()]
        return items, total

    async def get_class_report(self, class_id: UUID, session_date: date) -> ClassAttendanceReport:
        """Report the attendance of every actively enrolled student on a date.

        Students without a row for the date appear as NOT_RECORDED.

        Raises:
            ClassNotFoundError: If class not found.
        """
        class_ = await self._get_class(class_id)

        result = await self.db.execute(
            select(Student.id, Student.name, Student.matricula, Attendance.status)
            .select_from(Enrollment)
            .join(Student, Student.id == Enrollment.student_id)
            .outerjoin(
                Attendance,
                and_(
                    Attendance.student_id == Enrollment.student_id,
                    Attendance.class_id == Enrollment.class_id,
                    Attendance.date == session_date,
                ),
            )
            .where(
                Enrollment.class_id == str(class_id),
                Enrollment.status == EnrollmentStatus.ACTIVE,
            )
            .order_by(Student.name)
        )

        rows = [
            ClassReportRow(
                student_id=student_id,
                student_name=name,
                matricula=matricula,
                status=(
                    ReportAttendanceStatus(status.value)
                    if status is not None
                    else ReportAttendanceStatus.NOT_RECORDED
                ),
            )
            for student_id, name, matricula, status in result.all()
        ]

        counts = {status: 0 for status in ReportAttendanceStatus}
        for row in rows:
            counts[row.status] += 1

        return ClassAttendanceReport(
            class_id=class_.id,
            class_name=class_.name,
            date=session_date,
            rows=rows,
            total=len(rows),
            present=counts[ReportAttendanceStatus.PRESENT],
            absent=counts[ReportAttendanceStatus.ABSENT],
            excused=counts[ReportAttendanceStatus.EXCUSED],
            not_recorded=counts[ReportAttendanceStatus.NOT_RECORDED],
        )

    async def get_student_stats(
        self,
        student_id: UUID,
        class_id: UUID | None = None,
    ) -> StudentAttendanceStats:
        """Count a student's attendance rows by status.

        Args:
            student_id: Student identifier.
            class_id: Restrict to one class; None counts every class.

        Raises:
            StudentNotFoundError: If student not found.
        """
        student = await self.db.get(Student, str(student_id))
        if not student:
            raise StudentNotFoundError(f"Student {student_id} not found")

        query = (
            select(Attendance.status, func.count())
            .where(Attendance.student_id == str(student_id))
            .group_by(Attendance.status)
        )
        if class_id:
            query = query.where(Attendance.class_id == str(class_id))

        counts = {status: count for status, count in (await self.db.execute(query)).all()}
        total = sum(counts.values())
        present = counts.get(AttendanceStatus.PRESENT, 0)

        return StudentAttendanceStats(
            student_id=student_id,
            class_id=class_id,
            total=total,
            present=present,
            absent=counts.get(AttendanceStatus.ABSENT, 0),
            excused=counts.get(AttendanceStatus.EXCUSED, 0),
            presence_percentage=round(present / total * 100, 2) if total else 0.0,
        )

    async def _check_students(self, class_id: str, student_ids: list[str]) -> None:
        """Verify every student exists and is actively enrolled in the class.

        Entries are checked in order and the first failing one is reported.

        Raises:
            StudentNotFoundError: If the first failing student does not exist.
            NotEnrolledError: If the first failing student has no active enrollment.
        """
        existing = set(
            (
                await self.db.execute(select(Student.id).where(Student.id.in_(student_ids)))
            ).scalars().all()
        )

        # Locks the enrollment rows so a concurrent cancellation waits for the batch
        enrolled = set(
            (
                await self.db.execute(
                    select(Enrollment.student_id)
                    .where(
                        Enrollment.class_id == class_id,
                        Enrollment.student_id.in_(student_ids),
                        Enrollment.status == EnrollmentStatus.ACTIVE,
                    )
                    .with_for_update()
                )
            ).scalars().all()
        )
        for sid in student_ids:
            if sid not in existing:
                raise StudentNotFoundError(f"Student {sid} not found", {"student_id": sid})
            if sid not in enrolled:
                raise NotEnrolledError(
                    f"Student {sid} is not enrolled in this class",
                    {"student_id": sid},
                )

    async def _get_class(self, class_id: UUID) -> Class:
        class_ = await self.db.get(Class, str(class_id))

        if not class_:
            raise ClassNotFoundError(f"Class {class_id} not found")

        return class_

    async def _get_attendance(self, attendance_id: UUID) -> Attendance:
        attendance = await self.db.get(Attendance, str(attendance_id))

        if not attendance:
            raise AttendanceNotFoundError(f"Attendance {attendance_id} not found")

        return attendance
