# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity domain package.

Stateless validation and normalization of national IDs (CPF).
"""

from backoffice.domains.identity.registry import ensure_identity_available
from backoffice.domains.identity.validator import (
    CPF_LENGTH,
    has_valid_check_digits,
    is_valid_identity,
    normalize_identity,
    validate_identity,
)

__all__ = [
    "CPF_LENGTH",
    "normalize_identity",
    "validate_identity",
    "is_valid_identity",
    "has_valid_check_digits",
    "ensure_identity_available",
]
