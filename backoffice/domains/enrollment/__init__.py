# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides student enrollment management functionality including:
- Student enrollment in classes
- Enrollment cancellation
- Matrícula (enrollment code) allocation
"""

from backoffice.domains.enrollment.codes import MatriculaAllocator, format_matricula
from backoffice.domains.enrollment.service import EnrollmentService, open_enrollment

__all__ = [
    "EnrollmentService",
    "MatriculaAllocator",
    "format_matricula",
    "open_enrollment",
]
