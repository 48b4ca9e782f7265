# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request-scoped caller identity.

The HTTP layer (outside this package) authenticates the caller and binds
who is acting, from which address and with which client before invoking
the back office. The audit interceptor reads it back when writing audit
rows; the same fields are bound to the structlog context so every log line
of the request carries them.

Example:
    with request_context(actor_id="42", ip="10.0.0.8", user_agent="Mozilla/5.0"):
        await backoffice.approve_candidate(candidate_id)
"""

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from backoffice.utils.logging import bind_context, unbind_context


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller performing an operation.

    Attributes:
        actor_id: Authenticated user id, None for anonymous/public calls.
        ip: Client IP address.
        user_agent: Client user agent string.
    """

    actor_id: str | None = None
    ip: str | None = None
    user_agent: str | None = None


_EMPTY_CONTEXT = RequestContext()

_request_context: contextvars.ContextVar[RequestContext] = contextvars.ContextVar(
    "backoffice_request_context", default=_EMPTY_CONTEXT
)


def get_request_context() -> RequestContext:
    """Get the caller identity bound to the current context.

    Returns:
        The bound RequestContext, or an empty one when nothing was bound.
    """
    return _request_context.get()


def set_request_context(context: RequestContext) -> contextvars.Token[RequestContext]:
    """Bind a caller identity to the current context.

    Args:
        context: Caller identity.

    Returns:
        Token that can be used to restore the previous context.
    """
    bind_context(actor_id=context.actor_id, ip=context.ip)
    return _request_context.set(context)


def reset_request_context(token: contextvars.Token[RequestContext]) -> None:
    """Restore the caller identity that was bound before ``token``."""
    _request_context.reset(token)
    previous = _request_context.get()
    if previous is _EMPTY_CONTEXT:
        unbind_context("actor_id", "ip")
    else:
        bind_context(actor_id=previous.actor_id, ip=previous.ip)


@contextmanager
def request_context(
    actor_id: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
) -> Iterator[RequestContext]:
    """Bind a caller identity for the duration of a block.

    Args:
        actor_id: Authenticated user id.
        ip: Client IP address.
        user_agent: Client user agent string.

    Yields:
        The bound RequestContext.
    """
    context = RequestContext(actor_id=actor_id, ip=ip, user_agent=user_agent)
    token = set_request_context(context)
    try:
        yield context
    finally:
        reset_request_context(token)
