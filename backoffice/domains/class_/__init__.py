# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain package.

This package provides class management functionality including:
- Course and class creation and updates
- The class status state machine and its side effects
"""

from backoffice.domains.class_.service import ClassService
from backoffice.domains.class_.state_machine import (
    TRANSITIONS,
    TransitionEffect,
    allowed_targets,
    resolve_transition,
)

__all__ = [
    "ClassService",
    "TRANSITIONS",
    "TransitionEffect",
    "allowed_targets",
    "resolve_transition",
]
