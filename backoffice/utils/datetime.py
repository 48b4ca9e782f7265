# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the back office.

All timestamps are stored timezone-aware in UTC. Services never call
``datetime.now()`` directly; they receive a ``Clock`` so that matrícula
years and audit timestamps can be pinned in tests.

Usage:
------
    from backoffice.utils.datetime import utc_now

    # For SQLAlchemy model defaults
    created_at = mapped_column(DateTime(timezone=True), default=utc_now)

    # For injectable clocks
    service = CandidateService(db, clock=utc_now)
"""

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]
"""A zero-argument callable returning the current timezone-aware datetime."""


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)

