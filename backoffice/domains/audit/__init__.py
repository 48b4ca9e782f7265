# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit domain package.

Best-effort audit trail of mutating operations and the decorator that
records them.
"""

from backoffice.domains.audit.interceptor import SNAPSHOT_ACTIONS, audited, to_snapshot
from backoffice.domains.audit.service import AuditLogService

__all__ = [
    "AuditLogService",
    "audited",
    "to_snapshot",
    "SNAPSHOT_ACTIONS",
]
