# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the class status transition table."""

import pytest

from backoffice.domains.class_ import (
    TRANSITIONS,
    TransitionEffect,
    allowed_targets,
    resolve_transition,
)
from backoffice.domains.exceptions import IllegalTransitionError
from backoffice.models.common import ClassStatus


class TestResolveTransition:
    """Tests for legal transitions."""

    def test_planned_to_active(self) -> None:
        assert resolve_transition(ClassStatus.PLANNED, ClassStatus.ACTIVE) == TransitionEffect.NONE

    def test_active_to_ended_notifies(self) -> None:
        effect = resolve_transition(ClassStatus.ACTIVE, ClassStatus.ENDED)
        assert effect == TransitionEffect.NOTIFY_ENDED

    def test_active_to_cancelled_cancels_enrollments(self) -> None:
        effect = resolve_transition(ClassStatus.ACTIVE, ClassStatus.CANCELLED)
        assert effect == TransitionEffect.CANCEL_ENROLLMENTS

    def test_cancelled_can_be_reactivated(self) -> None:
        assert resolve_transition(ClassStatus.CANCELLED, ClassStatus.ACTIVE) == TransitionEffect.NONE


class TestIllegalTransitions:
    """Tests for rejected transitions."""

    @pytest.mark.parametrize("target", list(ClassStatus))
    def test_ended_is_terminal(self, target: ClassStatus) -> None:
        with pytest.raises(IllegalTransitionError, match="ENDED") as exc_info:
            resolve_transition(ClassStatus.ENDED, target)

        assert exc_info.value.current == "ENDED"
        assert exc_info.value.requested == target.name
        assert exc_info.value.http_status == 409

    @pytest.mark.parametrize(
        "status",
        [ClassStatus.PLANNED, ClassStatus.ACTIVE, ClassStatus.CANCELLED],
    )
    def test_same_status_is_rejected(self, status: ClassStatus) -> None:
        with pytest.raises(IllegalTransitionError, match="already"):
            resolve_transition(status, status)

    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (ClassStatus.PLANNED, ClassStatus.ENDED),
            (ClassStatus.PLANNED, ClassStatus.CANCELLED),
            (ClassStatus.ACTIVE, ClassStatus.PLANNED),
            (ClassStatus.CANCELLED, ClassStatus.ENDED),
            (ClassStatus.CANCELLED, ClassStatus.PLANNED),
        ],
    )
    def test_unlisted_pairs_are_rejected(self, current, requested) -> None:
        with pytest.raises(IllegalTransitionError) as exc_info:
            resolve_transition(current, requested)

        assert exc_info.value.details == {"from": current.name, "to": requested.name}


def test_every_listed_pair_resolves() -> None:
    for (current, requested), effect in TRANSITIONS.items():
        assert resolve_transition(current, requested) is effect


def test_allowed_targets() -> None:
    assert allowed_targets(ClassStatus.ACTIVE) == [ClassStatus.ENDED, ClassStatus.CANCELLED]
    assert allowed_targets(ClassStatus.ENDED) == []
