# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for direct students, enrollment and cancellation."""

from datetime import date

import pytest
from sqlalchemy import func, select

from backoffice.domains.enrollment import EnrollmentService
from backoffice.domains.exceptions import (
    AlreadyEnrolledError,
    DuplicateIdentityError,
    EnrollmentNotFoundError,
    InvalidIdentityError,
    NoSeatsAvailableError,
    NotEnrolledError,
    StudentNotFoundError,
)
from backoffice.infrastructure.database.models import Attendance, Candidate, Enrollment, Student
from backoffice.infrastructure.notifications import NotificationTemplate
from backoffice.models.attendance import AttendanceEntry
from backoffice.models.common import AttendanceStatus, EnrollmentStatus
from backoffice.models.student import StudentCreateRequest, StudentFilters, StudentUpdateRequest

pytestmark = pytest.mark.integration


def student_request(cpf: str = "98765432100", class_id=None, name: str = "João Souza"):
    return StudentCreateRequest(
        cpf=cpf,
        name=name,
        email=f"{cpf}@example.com",
        class_id=class_id,
    )


class TestCreateStudent:
    """Tests for direct student creation."""

    @pytest.mark.asyncio
    async def test_without_class(self, backoffice) -> None:
        student = await backoffice.create_student(student_request("987.654.321-00"))

        assert student.cpf == "98765432100"
        assert student.matricula == "20250001"
        assert student.class_id is None

    @pytest.mark.asyncio
    async def test_with_class_takes_a_seat(
        self, backoffice, make_class, enrolled_count, notifier
    ) -> None:
        class_ = await make_class(seats=1)

        student = await backoffice.create_student(student_request(class_id=class_.id))

        assert student.class_id == class_.id
        assert await enrolled_count(class_.id) == 1
        assert notifier.templates() == [NotificationTemplate.ENROLLMENT_CONFIRMED]

    @pytest.mark.asyncio
    async def test_full_class_creates_nothing(self, backoffice, make_class) -> None:
        class_ = await make_class(seats=0)

        with pytest.raises(NoSeatsAvailableError):
            await backoffice.create_student(student_request(class_id=class_.id))

        async with backoffice.sessionmaker() as session:
            count = (await session.execute(select(func.count()).select_from(Student))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_identity_used_by_candidate(self, backoffice, make_candidate) -> None:
        candidate = await make_candidate()

        with pytest.raises(DuplicateIdentityError) as exc_info:
            await backoffice.create_student(student_request(candidate.cpf))

        assert exc_info.value.source == "candidate"


class TestEnrollment:
    """Tests for enrolling and cancelling existing students."""

    @pytest.mark.asyncio
    async def test_enroll_and_cancel(
        self, backoffice, make_class, enrolled_count, notifier
    ) -> None:
        class_ = await make_class(seats=2)
        student = await backoffice.create_student(student_request())

        enrollment = await backoffice.enroll_student(student.id, class_.id)
        assert enrollment.status == EnrollmentStatus.ACTIVE
        assert await enrolled_count(class_.id) == 1

        with pytest.raises(AlreadyEnrolledError):
            await backoffice.enroll_student(student.id, class_.id)
        assert await enrolled_count(class_.id) == 1

        cancelled = await backoffice.cancel_enrollment(student.id, class_.id)
        assert cancelled.status == EnrollmentStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert await enrolled_count(class_.id) == 0

        with pytest.raises(NotEnrolledError):
            await backoffice.cancel_enrollment(student.id, class_.id)
        assert await enrolled_count(class_.id) == 0

        assert notifier.templates() == [
            NotificationTemplate.ENROLLMENT_CONFIRMED,
            NotificationTemplate.ENROLLMENT_CANCELLED,
        ]

    @pytest.mark.asyncio
    async def test_reenrolling_reactivates_the_row(
        self, backoffice, make_class, enrolled_count
    ) -> None:
        class_ = await make_class(seats=2)
        student = await backoffice.create_student(student_request())
        first = await backoffice.enroll_student(student.id, class_.id)
        await backoffice.cancel_enrollment(student.id, class_.id)

        again = await backoffice.enroll_student(student.id, class_.id)

        assert again.id == first.id
        assert again.status == EnrollmentStatus.ACTIVE
        assert again.cancelled_at is None
        assert await enrolled_count(class_.id) == 1

    @pytest.mark.asyncio
    async def test_list_by_class(self, backoffice, make_class) -> None:
        class_ = await make_class(seats=3)
        for cpf, name in [("98765432100", "Bruna"), ("98765432101", "Ana")]:
            student = await backoffice.create_student(student_request(cpf, name=name))
            await backoffice.enroll_student(student.id, class_.id)

        async with backoffice.sessionmaker() as session:
            summaries = await EnrollmentService(session).list_by_class(class_.id)

        assert [s.student_name for s in summaries] == ["Ana", "Bruna"]

    @pytest.mark.asyncio
    async def test_unknown_student(self, backoffice, make_class) -> None:
        class_ = await make_class()

        with pytest.raises(StudentNotFoundError):
            await backoffice.enroll_student("00000000-0000-0000-0000-000000000000", class_.id)


class TestDeleteStudent:
    """Tests for student deletion."""

    @pytest.mark.asyncio
    async def test_delete_releases_seat_and_cleans_up(
        self, backoffice, make_class, make_candidate, enrolled_count
    ) -> None:
        class_ = await make_class(seats=3)
        candidate = await make_candidate(class_.id)
        approval = await backoffice.approve_candidate(candidate.id)
        student_id = approval.student.id
        await backoffice.record_attendance(
            class_.id,
            date(2025, 3, 12),
            [AttendanceEntry(student_id=student_id, status=AttendanceStatus.PRESENT)],
        )

        await backoffice.delete_student(student_id)

        assert await enrolled_count(class_.id) == 0
        async with backoffice.sessionmaker() as session:
            assert await session.get(Student, str(student_id)) is None
            for model in (Attendance, Enrollment):
                count = (
                    await session.execute(select(func.count()).select_from(model))
                ).scalar_one()
                assert count == 0
            linked = await session.get(Candidate, str(candidate.id))
            assert linked.student_id is None

    @pytest.mark.asyncio
    async def test_delete_unknown(self, backoffice) -> None:
        with pytest.raises(StudentNotFoundError):
            await backoffice.delete_student("00000000-0000-0000-0000-000000000000")


class TestUpdateStudent:
    """Tests for correcting student data."""

    @pytest.mark.asyncio
    async def test_contact_fields(self, backoffice) -> None:
        student = await backoffice.create_student(student_request())

        updated = await backoffice.update_student(
            student.id,
            StudentUpdateRequest(name="João P. Souza", phone="11 99999-0000"),
        )

        assert updated.name == "João P. Souza"
        assert updated.phone == "11 99999-0000"
        assert updated.email == student.email
        assert updated.cpf == student.cpf

    @pytest.mark.asyncio
    async def test_identity_change_is_checked_everywhere(
        self, backoffice, make_candidate
    ) -> None:
        student = await backoffice.create_student(student_request("98765432100"))
        other = await backoffice.create_student(student_request("98765432101"))
        candidate = await make_candidate()

        with pytest.raises(DuplicateIdentityError) as exc_info:
            await backoffice.update_student(student.id, StudentUpdateRequest(cpf=candidate.cpf))
        assert exc_info.value.source == "candidate"

        with pytest.raises(DuplicateIdentityError) as exc_info:
            await backoffice.update_student(student.id, StudentUpdateRequest(cpf=other.cpf))
        assert exc_info.value.source == "student"

        with pytest.raises(InvalidIdentityError):
            await backoffice.update_student(student.id, StudentUpdateRequest(cpf="123"))

        assert (await backoffice.get_student(student.id)).cpf == "98765432100"

    @pytest.mark.asyncio
    async def test_identity_change_follows_to_candidate(
        self, backoffice, make_class, make_candidate
    ) -> None:
        class_ = await make_class()
        candidate = await make_candidate(class_.id)
        student = (await backoffice.approve_candidate(candidate.id)).student

        same = await backoffice.update_student(
            student.id, StudentUpdateRequest(cpf=candidate.cpf)
        )
        assert same.cpf == candidate.cpf

        moved = await backoffice.update_student(
            student.id, StudentUpdateRequest(cpf="123.456.789-09")
        )

        assert moved.cpf == "12345678909"
        assert (await backoffice.get_candidate(candidate.id)).cpf == "12345678909"

    @pytest.mark.asyncio
    async def test_unknown_student(self, backoffice) -> None:
        with pytest.raises(StudentNotFoundError):
            await backoffice.update_student(
                "00000000-0000-0000-0000-000000000000", StudentUpdateRequest(name="X")
            )


class TestStudentLookup:
    """Tests for matrícula lookup and student listing."""

    @pytest.mark.asyncio
    async def test_find_by_matricula(self, backoffice) -> None:
        student = await backoffice.create_student(student_request())

        found = await backoffice.find_student_by_matricula(student.matricula)

        assert found.id == student.id
        assert await backoffice.find_student_by_matricula("19990001") is None

    @pytest.mark.asyncio
    async def test_list_with_filters(self, backoffice) -> None:
        ana = await backoffice.create_student(student_request("98765432100", name="Ana Lima"))
        bruno = await backoffice.create_student(student_request("98765432101", name="Bruno Dias"))
        await backoffice.create_student(student_request("98765432102", name="Carla Lima"))

        everyone, total = await backoffice.list_students()
        assert total == 3
        assert [s.matricula for s in everyone] == ["20250003", "20250002", "20250001"]

        limas, total = await backoffice.list_students(StudentFilters(name="lima"))
        assert total == 2
        assert {s.name for s in limas} == {"Ana Lima", "Carla Lima"}

        by_cpf, _ = await backoffice.list_students(StudentFilters(cpf="987.654.321-01"))
        assert [s.id for s in by_cpf] == [bruno.id]

        by_code, _ = await backoffice.list_students(StudentFilters(matricula=ana.matricula))
        assert [s.id for s in by_code] == [ana.id]

        page, total = await backoffice.list_students(StudentFilters(limit=1, offset=1))
        assert total == 3
        assert [s.matricula for s in page] == ["20250002"]


class TestDeleteEnrollment:
    """Tests for removing enrollment rows."""

    @pytest.mark.asyncio
    async def test_active_enrollment_gives_seat_back(
        self, backoffice, make_class, enrolled_count
    ) -> None:
        class_ = await make_class(seats=1)
        student = await backoffice.create_student(student_request(class_id=class_.id))
        assert await enrolled_count(class_.id) == 1

        await backoffice.delete_enrollment(student.id, class_.id)

        assert await enrolled_count(class_.id) == 0
        assert (await backoffice.get_student(student.id)).class_id is None
        async with backoffice.sessionmaker() as session:
            count = (
                await session.execute(select(func.count()).select_from(Enrollment))
            ).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_cancelled_enrollment_leaves_seats_alone(
        self, backoffice, make_class, enrolled_count
    ) -> None:
        class_ = await make_class(seats=2)
        student = await backoffice.create_student(student_request(class_id=class_.id))
        other = await backoffice.create_student(student_request("98765432101", class_id=class_.id))
        await backoffice.cancel_enrollment(student.id, class_.id)

        await backoffice.delete_enrollment(student.id, class_.id)

        assert await enrolled_count(class_.id) == 1
        assert (await backoffice.get_student(other.id)).class_id == class_.id

        with pytest.raises(EnrollmentNotFoundError):
            await backoffice.delete_enrollment(student.id, class_.id)
