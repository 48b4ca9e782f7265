# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit log schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models.common import AuditAction, OrmSchema


class AuditLogResponse(OrmSchema):
    """Stored audit entry."""

    id: UUID
    actor_id: str | None = None
    action: AuditAction
    entity: str
    entity_id: str | None = None
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    ip: str | None = None
    user_agent: str | None = None
    description: str | None = None
    created_at: datetime


class AuditLogFilters(BaseModel):
    """Filters for listing audit entries."""

    actor_id: str | None = None
    action: AuditAction | None = None
    entity: str | None = None
    entity_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class AuditStats(BaseModel):
    """Audit entry counts."""

    total: int = 0
    by_action: dict[str, int] = Field(default_factory=dict)
    by_entity: dict[str, int] = Field(default_factory=dict)
