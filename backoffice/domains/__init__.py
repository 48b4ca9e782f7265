# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the back office.

Each domain package provides a service that encapsulates one area of the
enrollment lifecycle and owns its unit of work.

Domains:
    identity: National ID validation.
    capacity: Seat accounting per class.
    class_: Class management and status lifecycle.
    candidate: Candidate intake, approval and rejection.
    enrollment: Direct enrollment of existing students.
    student: Direct student registration and removal.
    attendance: Batch attendance recording and reports.
    audit: Audit trail of mutating operations.
"""
