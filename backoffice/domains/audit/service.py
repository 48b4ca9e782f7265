# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit log service.

Audit entries are written in their own session, after the business
transaction has committed. A failure to write one is logged and
swallowed: the audit trail is best-effort and never undoes or fails the
operation it describes.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.core.context import RequestContext, get_request_context
from backoffice.infrastructure.database.models import AuditLog
from backoffice.models.audit import AuditLogFilters, AuditLogResponse, AuditStats
from backoffice.models.common import AuditAction
from backoffice.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)


class AuditLogService:
    """Service for writing and querying the audit trail.

    Attributes:
        sessionmaker: Factory for the audit's own sessions.
        clock: Source of entry timestamps.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
    ) -> None:
        """Initialize audit log service.

        Args:
            sessionmaker: Session factory, independent of the caller's session.
            clock: Source of entry timestamps.
        """
        self.sessionmaker = sessionmaker
        self.clock = clock

    async def record(
        self,
        action: AuditAction,
        entity: str,
        entity_id: str | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        description: str | None = None,
        context: RequestContext | None = None,
    ) -> bool:
        """Write one audit entry.

        Never raises; failures are logged.

        Args:
            action: Kind of operation.
            entity: Entity type name (e.g. "candidate").
            entity_id: Identifier of the affected record.
            before: Snapshot prior to the operation.
            after: Snapshot after the operation.
            description: Free text description.
            context: Caller identity; defaults to the bound request context.

        Returns:
            True if the entry was stored.
        """
        ctx = context or get_request_context()

        try:
            async with self.sessionmaker() as session:
                session.add(
                    AuditLog(
                        actor_id=ctx.actor_id,
                        action=action,
                        entity=entity,
                        entity_id=entity_id,
                        before=before,
                        after=after,
                        ip=ctx.ip,
                        user_agent=ctx.user_agent,
                        description=description,
                        created_at=self.clock(),
                    )
                )
                await session.commit()
        except Exception as e:
            logger.error(
                "Failed to write audit entry: action=%s, entity=%s, id=%s: %s",
                action.value,
                entity,
                entity_id,
                str(e),
            )
            return False

        logger.debug("Audit: %s %s %s by %s", action.value, entity, entity_id, ctx.actor_id)
        return True

    async def list_logs(
        self,
        filters: AuditLogFilters | None = None,
    ) -> tuple[list[AuditLogResponse], int]:
        """List audit entries, newest first.

        Args:
            filters: Optional filters and pagination.

        Returns:
            Tuple of (entries, total matching count).
        """
        filters = filters or AuditLogFilters()

        conditions = []
        if filters.actor_id:
            conditions.append(AuditLog.actor_id == filters.actor_id)
        if filters.action:
            conditions.append(AuditLog.action == filters.action)
        if filters.entity:
            conditions.append(AuditLog.entity == filters.entity)
        if filters.entity_id:
            conditions.append(AuditLog.entity_id == filters.entity_id)
        if filters.created_from:
            conditions.append(AuditLog.created_at >= filters.created_from)
        if filters.created_to:
            conditions.append(AuditLog.created_at <= filters.created_to)

        async with self.sessionmaker() as session:
            total = (
                await session.execute(
                    select(func.count()).select_from(AuditLog).where(*conditions)
                )
            ).scalar_one()

            result = await session.execute(
                select(AuditLog)
                .where(*conditions)
                .order_by(AuditLog.created_at.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            items = [AuditLogResponse.model_validate(row) for row in result.scalars().all()]

        return items, total

    async def get_stats(self) -> AuditStats:
        """Count audit entries by action and by entity."""
        async with self.sessionmaker() as session:
            by_action = await session.execute(
                select(AuditLog.action, func.count()).group_by(AuditLog.action)
            )
            by_entity = await session.execute(
                select(AuditLog.entity, func.count()).group_by(AuditLog.entity)
            )
            action_counts = {action.value: count for action, count in by_action.all()}
            entity_counts = {entity: count for entity, count in by_entity.all()}

        return AuditStats(
            total=sum(action_counts.values()),
            by_action=action_counts,
            by_entity=entity_counts,
        )
