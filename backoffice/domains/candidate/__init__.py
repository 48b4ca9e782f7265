# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Candidate domain package.

This package provides the candidate lifecycle:
- Registration with national ID validation
- Approval into an enrolled student
- Rejection and deletion
"""

from backoffice.domains.candidate.service import CandidateService

__all__ = [
    "CandidateService",
]
