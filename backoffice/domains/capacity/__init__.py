# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capacity domain package.

Atomic seat reservation and release for classes.
"""

from backoffice.domains.capacity.ledger import ENROLLABLE_STATUSES, CapacityLedger

__all__ = [
    "CapacityLedger",
    "ENROLLABLE_STATUSES",
]
