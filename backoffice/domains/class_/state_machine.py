# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class status transition table.

    PLANNED ──► ACTIVE ──► ENDED
                  │  ▲
                  ▼  │
               CANCELLED

ENDED is terminal. Every pair not listed, including staying in the same
status, is illegal.
"""

from enum import Enum

from backoffice.domains.exceptions import IllegalTransitionError
from backoffice.models.common import ClassStatus


class TransitionEffect(str, Enum):
    """Side effect the class service runs with a transition."""

    NONE = "none"
    NOTIFY_ENDED = "notify_ended"
    CANCEL_ENROLLMENTS = "cancel_enrollments"


TRANSITIONS: dict[tuple[ClassStatus, ClassStatus], TransitionEffect] = {
    (ClassStatus.PLANNED, ClassStatus.ACTIVE): TransitionEffect.NONE,
    (ClassStatus.ACTIVE, ClassStatus.ENDED): TransitionEffect.NOTIFY_ENDED,
    (ClassStatus.ACTIVE, ClassStatus.CANCELLED): TransitionEffect.CANCEL_ENROLLMENTS,
    (ClassStatus.CANCELLED, ClassStatus.ACTIVE): TransitionEffect.NONE,
}


def resolve_transition(current: ClassStatus, requested: ClassStatus) -> TransitionEffect:
    """Look up the effect of moving a class between two statuses.

    Args:
        current: Status the class is in.
        requested: Status being asked for.

    Returns:
        The side effect to run with the transition.

    Raises:
        IllegalTransitionError: If the pair is not in the transition table.
    """
    effect = TRANSITIONS.get((current, requested))
    if effect is not None:
        return effect

    if current == ClassStatus.ENDED:
        message = "ENDED classes cannot be reactivated or changed"
    elif current == requested:
        message = f"Class is already {current.name}"
    else:
        message = f"Cannot move class from {current.name} to {requested.name}"

    raise IllegalTransitionError(message, current=current.name, requested=requested.name)


def allowed_targets(current: ClassStatus) -> list[ClassStatus]:
    """List the statuses a class may move to from ``current``."""
    return [to for (frm, to) in TRANSITIONS if frm == current]
