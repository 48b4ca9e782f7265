# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the audit interceptor and audit log service."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from pydantic import BaseModel

from backoffice.core.context import get_request_context, request_context
from backoffice.domains.audit import AuditLogService, audited, to_snapshot
from backoffice.models.common import AuditAction


class Widget(BaseModel):
    id: str
    name: str


class WidgetService:
    """Minimal service exercising every interceptor path."""

    def __init__(self, audit) -> None:
        self.audit = audit
        self.calls: list[str] = []
        self.snapshot = AsyncMock(return_value={"id": "w1", "name": "old"})

    async def _snapshot(self, widget_id, *args, **kwargs):
        return await self.snapshot(widget_id)

    @audited(AuditAction.CREATE, "widget")
    async def create(self, name: str) -> Widget:
        self.calls.append("create")
        return Widget(id="w1", name=name)

    @audited(AuditAction.UPDATE, "widget", old_state="_snapshot")
    async def rename(self, widget_id: str, name: str) -> Widget:
        self.calls.append("rename")
        return Widget(id=widget_id, name=name)

    @audited(AuditAction.DELETE, "widget", old_state="_snapshot", description="removed")
    async def delete(self, widget_id: str) -> None:
        self.calls.append("delete")

    @audited(
        AuditAction.CREATE,
        "widget",
        old_state="_snapshot",
        overwrite_action=AuditAction.UPDATE,
    )
    async def upsert(self, widget_id: str, name: str) -> Widget:
        self.calls.append("upsert")
        return Widget(id=widget_id, name=name)

    @audited(AuditAction.UPDATE, "widget", old_state="_snapshot")
    async def explode(self, widget_id: str) -> None:
        raise RuntimeError("boom")


@pytest.fixture
def recorder():
    """Create mock audit recorder."""
    audit = MagicMock()
    audit.record = AsyncMock(return_value=True)
    return audit


class TestAudited:
    """Tests for the @audited decorator."""

    @pytest.mark.asyncio
    async def test_create_records_after_snapshot(self, recorder) -> None:
        service = WidgetService(recorder)

        result = await service.create("first")

        assert result.name == "first"
        service.snapshot.assert_not_awaited()
        recorder.record.assert_awaited_once_with(
            action=AuditAction.CREATE,
            entity="widget",
            entity_id="w1",
            before=None,
            after={"id": "w1", "name": "first"},
            description=None,
        )

    @pytest.mark.asyncio
    async def test_update_captures_before_state(self, recorder) -> None:
        service = WidgetService(recorder)

        await service.rename("w1", "new")

        service.snapshot.assert_awaited_once_with("w1")
        kwargs = recorder.record.await_args.kwargs
        assert kwargs["before"] == {"id": "w1", "name": "old"}
        assert kwargs["after"] == {"id": "w1", "name": "new"}

    @pytest.mark.asyncio
    async def test_delete_has_no_after_state(self, recorder) -> None:
        service = WidgetService(recorder)

        await service.delete("w1")

        kwargs = recorder.record.await_args.kwargs
        assert kwargs["entity_id"] == "w1"
        assert kwargs["after"] is None
        assert kwargs["description"] == "removed"

    @pytest.mark.asyncio
    async def test_upsert_over_existing_state_records_overwrite_action(self, recorder) -> None:
        service = WidgetService(recorder)

        await service.upsert("w1", "new")

        kwargs = recorder.record.await_args.kwargs
        assert kwargs["action"] == AuditAction.UPDATE
        assert kwargs["before"] == {"id": "w1", "name": "old"}
        assert kwargs["after"] == {"id": "w1", "name": "new"}

    @pytest.mark.asyncio
    async def test_upsert_without_existing_state_records_declared_action(self, recorder) -> None:
        service = WidgetService(recorder)
        service.snapshot.return_value = None

        await service.upsert("w2", "fresh")

        kwargs = recorder.record.await_args.kwargs
        assert kwargs["action"] == AuditAction.CREATE
        assert kwargs["before"] is None

    @pytest.mark.asyncio
    async def test_failed_operation_is_not_recorded(self, recorder) -> None:
        service = WidgetService(recorder)

        with pytest.raises(RuntimeError, match="boom"):
            await service.explode("w1")

        recorder.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_audit_write_failure_does_not_fail_operation(self, recorder) -> None:
        recorder.record.side_effect = RuntimeError("audit table gone")
        service = WidgetService(recorder)

        result = await service.rename("w1", "new")

        assert result.name == "new"
        assert service.calls == ["rename"]

    @pytest.mark.asyncio
    async def test_snapshot_failure_still_runs_operation(self, recorder) -> None:
        service = WidgetService(recorder)
        service.snapshot.side_effect = RuntimeError("read failed")

        await service.rename("w1", "new")

        assert service.calls == ["rename"]
        assert recorder.record.await_args.kwargs["before"] is None

    @pytest.mark.asyncio
    async def test_no_recorder_skips_auditing(self) -> None:
        service = WidgetService(None)

        result = await service.rename("w1", "new")

        assert result.name == "new"
        service.snapshot.assert_not_awaited()


class TestToSnapshot:
    """Tests for to_snapshot."""

    def test_model(self) -> None:
        assert to_snapshot(Widget(id="a", name="b")) == {"id": "a", "name": "b"}

    def test_list(self) -> None:
        assert to_snapshot([Widget(id="a", name="b")]) == {"items": [{"id": "a", "name": "b"}]}

    def test_none(self) -> None:
        assert to_snapshot(None) is None


class TestAuditLogService:
    """Tests for AuditLogService.record."""

    @pytest.mark.asyncio
    async def test_record_uses_request_context(self) -> None:
        session = MagicMock()
        session.add = MagicMock()
        session.commit = AsyncMock()
        session.__aenter__ = AsyncMock(return_value=session)
        session.__aexit__ = AsyncMock(return_value=None)
        service = AuditLogService(MagicMock(return_value=session))

        with request_context(actor_id="staff-7", ip="10.0.0.8", user_agent="pytest"):
            stored = await service.record(AuditAction.APPROVE, "candidate", str(uuid4()))

        assert stored is True
        entry = session.add.call_args.args[0]
        assert entry.actor_id == "staff-7"
        assert entry.ip == "10.0.0.8"
        assert entry.user_agent == "pytest"
        assert entry.action == AuditAction.APPROVE
        assert get_request_context().actor_id is None

    @pytest.mark.asyncio
    async def test_record_swallows_database_errors(self) -> None:
        sessionmaker = MagicMock(side_effect=RuntimeError("no database"))
        service = AuditLogService(sessionmaker)

        stored = await service.record(AuditAction.CREATE, "candidate", "c1")

        assert stored is False
