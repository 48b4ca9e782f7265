# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Candidate request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models.common import CandidateStatus, OrmSchema
from backoffice.models.student import StudentResponse


class CandidateCreateRequest(BaseModel):
    """Public application form submission."""

    cpf: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)
    desired_class_id: UUID | None = None


class CandidateUpdateRequest(BaseModel):
    """Update of non-status candidate fields."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)
    desired_class_id: UUID | None = None


class CandidateResponse(OrmSchema):
    """Candidate details."""

    id: UUID
    cpf: str
    name: str
    email: str | None = None
    phone: str | None = None
    desired_class_id: UUID | None = None
    status: CandidateStatus
    rejection_reason: str | None = None
    student_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CandidateFilters(BaseModel):
    """Filters for listing candidates."""

    status: CandidateStatus | None = None
    desired_class_id: UUID | None = None
    search: str | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ApprovalResult(BaseModel):
    """Outcome of a candidate approval."""

    candidate: CandidateResponse
    student: StudentResponse
    class_id: UUID
    matricula: str


class CandidateStatistics(BaseModel):
    """Candidate counts by status."""

    total: int = 0
    by_status: dict[CandidateStatus, int] = Field(default_factory=dict)
    by_class: dict[str, int] = Field(default_factory=dict)
