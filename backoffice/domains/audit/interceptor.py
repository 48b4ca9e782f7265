# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit interceptor for mutating service methods.

Decorate a service coroutine with ``@audited(...)`` and the call is
recorded in the audit trail once it succeeds:

    class CandidateService:
        @audited(AuditAction.REJECT, "candidate", old_state="_snapshot")
        async def reject(self, candidate_id, reason): ...

For UPDATE, DELETE, APPROVE and REJECT the ``old_state`` loader (a method
name on the service) is awaited first to capture the "before" snapshot.
The "after" snapshot is the method's return value. The entry is written
through ``self.audit`` (an AuditLogService, or None to disable auditing)
with the caller identity from the request context.

Failed operations are not audited. A failing snapshot loader or audit
write is logged and never changes the operation's outcome.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from pydantic import BaseModel

from backoffice.models.common import AuditAction

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

SNAPSHOT_ACTIONS = frozenset(
    {AuditAction.UPDATE, AuditAction.DELETE, AuditAction.APPROVE, AuditAction.REJECT}
)

EntityIdResolver = Callable[..., str | None]


def to_snapshot(value: Any) -> dict[str, Any] | None:
    """Turn a service result into a JSON-safe snapshot dict."""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return value
    if isinstance(value, (list, tuple)):
        return {"items": [to_snapshot(item) for item in value]}
    return {"value": str(value)}


def _default_entity_id(result: Any, args: tuple[Any, ...], kwargs: dict[str, Any]) -> str | None:
    result_id = getattr(result, "id", None)
    if result_id is not None:
        return str(result_id)
    if args:
        return str(args[0])
    return None


def audited(
    action: AuditAction,
    entity: str,
    *,
    old_state: str | None = None,
    entity_id: EntityIdResolver | None = None,
    description: str | None = None,
    overwrite_action: AuditAction | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Record successful calls of a service method in the audit trail.

    Args:
        action: Audit action for the call.
        entity: Entity type name stored on the entry.
        old_state: Name of a service coroutine taking the same arguments
            and returning the prior snapshot.
        entity_id: Callable ``(result, args, kwargs) -> id``; defaults to
            ``result.id`` or the first positional argument.
        description: Optional fixed description.
        overwrite_action: Action recorded instead of ``action`` when the
            ``old_state`` loader finds existing state, for upserts.

    Returns:
        Decorator for async service methods.
    """
    resolve_id = entity_id or _default_entity_id

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            service = args[0]
            call_args = args[1:]
            recorder = getattr(service, "audit", None)

            if recorder is None:
                return await func(*args, **kwargs)

            before: dict[str, Any] | None = None
            if old_state is not None and (
                action in SNAPSHOT_ACTIONS or overwrite_action is not None
            ):
                try:
                    loader = getattr(service, old_state)
                    before = await loader(*call_args, **kwargs)
                except Exception as e:
                    logger.warning(
                        "Audit snapshot failed for %s %s: %s",
                        action.value,
                        entity,
                        str(e),
                    )
                    before = None

            result = await func(*args, **kwargs)

            recorded = action
            if overwrite_action is not None and before:
                recorded = overwrite_action

            try:
                target_id = resolve_id(result, call_args, kwargs)
                after = None if recorded == AuditAction.DELETE else to_snapshot(result)
                await recorder.record(
                    action=recorded,
                    entity=entity,
                    entity_id=target_id,
                    before=before,
                    after=after,
                    description=description,
                )
            except Exception as e:
                logger.error("Audit write failed for %s %s: %s", recorded.value, entity, str(e))
            return result

        return wrapper

    return decorator
