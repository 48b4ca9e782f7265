# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student domain package.

Direct student registration and removal outside the approval flow.
"""

from backoffice.domains.student.service import StudentService

__all__ = [
    "StudentService",
]
