# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the back office.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from backoffice.utils.datetime import Clock, utc_now
from backoffice.utils.logging import (
    bind_context,
    clear_context,
    setup_logging,
    unbind_context,
)

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    "unbind_context",
    # Datetime
    "Clock",
    "utc_now",
]
