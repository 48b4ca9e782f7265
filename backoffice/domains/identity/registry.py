# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""National ID uniqueness across candidates and students."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.domains.exceptions import DuplicateIdentityError
from backoffice.infrastructure.database.models import Candidate, Student


async def ensure_identity_available(
    db: AsyncSession,
    cpf: str,
    exclude_candidate_id: str | None = None,
    exclude_student_id: str | None = None,
) -> None:
    """Check that a normalized national ID is not registered yet.

    Candidates are checked first, then students.

    Args:
        db: Async database session.
        cpf: Normalized national ID.
        exclude_candidate_id: Candidate allowed to hold the ID (the one
            being approved or updated).
        exclude_student_id: Student allowed to hold the ID (the one being
            updated).

    Raises:
        DuplicateIdentityError: With ``source`` "candidate" or "student".
    """
    candidate_query = select(Candidate.id).where(Candidate.cpf == cpf)
    if exclude_candidate_id is not None:
        candidate_query = candidate_query.where(Candidate.id != exclude_candidate_id)

    if (await db.execute(candidate_query)).first() is not None:
        raise DuplicateIdentityError("CPF already registered for a candidate", source="candidate")

    student_query = select(Student.id).where(Student.cpf == cpf)
    if exclude_student_id is not None:
        student_query = student_query.where(Student.id != exclude_student_id)

    if (await db.execute(student_query)).first() is not None:
        raise DuplicateIdentityError("CPF already registered for a student", source="student")
