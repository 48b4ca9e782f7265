# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification infrastructure.

Renders the student-facing templates and delivers them by email in
background tasks with bounded retries.
"""

from backoffice.infrastructure.notifications.service import (
    NotificationDispatcher,
    NotificationService,
)
from backoffice.infrastructure.notifications.templates import NotificationTemplate, render

__all__ = [
    "NotificationDispatcher",
    "NotificationService",
    "NotificationTemplate",
    "render",
]
