# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models.common import OrmSchema


class StudentCreateRequest(BaseModel):
    """Direct student registration by staff."""

    cpf: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)
    class_id: UUID | None = None


class StudentResponse(OrmSchema):
    """Student details."""

    id: UUID
    matricula: str
    cpf: str
    name: str
    email: str | None = None
    phone: str | None = None
    class_id: UUID | None = None
    candidate_id: UUID | None = None
    created_at: datetime | None = None


class StudentUpdateRequest(BaseModel):
    """Update of student contact and identity fields."""

    cpf: str | None = Field(default=None, min_length=1, max_length=20)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=30)


class StudentFilters(BaseModel):
    """Filters for listing students."""

    name: str | None = None
    cpf: str | None = None
    email: str | None = None
    matricula: str | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)
