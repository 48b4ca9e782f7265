# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""National ID (CPF) normalization and validation.

The default rule is the weak one the stored data was validated with:
eleven digits once punctuation is stripped, not all the same digit.
With ``strict=True`` the two CPF check digits are verified as well.

Example:
    >>> validate_identity("529.982.247-25")
    '52998224725'
    >>> validate_identity("111.111.111-11")
    Traceback (most recent call last):
    ...
    InvalidIdentityError: CPF must not repeat a single digit
"""

import re

from backoffice.domains.exceptions import InvalidIdentityError

CPF_LENGTH = 11

_NON_DIGITS = re.compile(r"\D")


def normalize_identity(raw: str) -> str:
    """Strip every non-digit character from a national ID."""
    return _NON_DIGITS.sub("", raw or "")


def _check_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def has_valid_check_digits(cpf: str) -> bool:
    """Verify the two trailing CPF check digits.

    Args:
        cpf: Normalized eleven-digit CPF.

    Returns:
        True if both check digits match.
    """
    if len(cpf) != CPF_LENGTH or not cpf.isdigit():
        return False
    first = _check_digit(cpf[:9])
    second = _check_digit(cpf[:9] + str(first))
    return cpf[9:] == f"{first}{second}"


def validate_identity(raw: str, strict: bool = False) -> str:
    """Validate a national ID and return its normalized form.

    Args:
        raw: National ID as typed, punctuation allowed.
        strict: Also verify the CPF check digits.

    Returns:
        The eleven normalized digits.

    Raises:
        InvalidIdentityError: If the ID is malformed.
    """
    cpf = normalize_identity(raw)

    if len(cpf) != CPF_LENGTH:
        raise InvalidIdentityError(
            f"CPF must have {CPF_LENGTH} digits",
            {"length": len(cpf)},
        )

    if cpf == cpf[0] * CPF_LENGTH:
        raise InvalidIdentityError("CPF must not repeat a single digit")

    if strict and not has_valid_check_digits(cpf):
        raise InvalidIdentityError("CPF check digits do not match")

    return cpf


def is_valid_identity(raw: str, strict: bool = False) -> bool:
    """Check a national ID without raising."""
    try:
        validate_identity(raw, strict=strict)
    except InvalidIdentityError:
        return False
    return True
