# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Append-only audit log table."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.infrastructure.database.models.base import (
    Base,
    JSONType,
    UUIDPrimaryKeyMixin,
    enum_column_type,
)
from backoffice.models.common import AuditAction
from backoffice.utils.datetime import utc_now


class AuditLog(UUIDPrimaryKeyMixin, Base):
    """Who did what to which record, with before/after snapshots."""

    __tablename__ = "audit_logs"

    actor_id: Mapped[str | None] = mapped_column(String(64), index=True)
    action: Mapped[AuditAction] = mapped_column(
        enum_column_type(AuditAction), nullable=False, index=True
    )
    entity: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[str | None] = mapped_column(String(64), index=True)
    before: Mapped[dict[str, Any] | None] = mapped_column("dados_anteriores", JSONType)
    after: Mapped[dict[str, Any] | None] = mapped_column("dados_novos", JSONType)
    ip: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
