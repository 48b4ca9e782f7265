# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain exceptions for the back office.

Every domain service raises subclasses of BackofficeError. Each subclass
carries an ``http_status`` hint so the HTTP layer can map errors without
knowing the domain:

- 400: malformed input (InvalidIdentityError, InvalidClassDatesError, ...)
- 404: referenced record does not exist (ClassNotFoundError, ...)
- 409: request conflicts with current state (NoSeatsAvailableError,
  AlreadyApprovedError, IllegalTransitionError, ...)
"""

from typing import Any


class BackofficeError(Exception):
    """Base exception for all back office domain errors.

    Attributes:
        message: Human-readable error description.
        details: Dictionary with additional error context.
        http_status: Suggested HTTP status code for the error.
    """

    http_status: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# =============================================================================
# Validation errors (400)
# =============================================================================


class InvalidIdentityError(BackofficeError):
    """Raised when a national ID fails format validation."""

    pass


class InvalidClassDatesError(BackofficeError):
    """Raised when a class end date is not after its start date."""

    pass


class InvalidCapacityError(BackofficeError):
    """Raised when a class seat count is negative or below current enrollment."""

    pass


class CandidateWithoutClassError(BackofficeError):
    """Raised when approving a candidate with no target class."""

    pass


# =============================================================================
# Not found errors (404)
# =============================================================================


class NotFoundError(BackofficeError):
    """Base exception for missing records."""

    http_status = 404


class ClassNotFoundError(NotFoundError):
    """Raised when class is not found."""

    pass


class CourseNotFoundError(NotFoundError):
    """Raised when course is not found."""

    pass


class CandidateNotFoundError(NotFoundError):
    """Raised when candidate is not found."""

    pass


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    pass


class AttendanceNotFoundError(NotFoundError):
    """Raised when an attendance record is not found."""

    pass


class EnrollmentNotFoundError(NotFoundError):
    """Raised when a student has no enrollment row in the class."""

    pass


# =============================================================================
# Conflict errors (409)
# =============================================================================


class ConflictError(BackofficeError):
    """Base exception for requests that conflict with current state."""

    http_status = 409


class DuplicateIdentityError(ConflictError):
    """Raised when a national ID is already registered.

    Attributes:
        source: Where the existing registration was found,
            ``"candidate"`` or ``"student"``.
    """

    def __init__(self, message: str, source: str, details: dict[str, Any] | None = None) -> None:
        self.source = source
        super().__init__(message, {"source": source, **(details or {})})


class ClassNameExistsError(ConflictError):
    """Raised when class name already exists."""

    pass


class ClassHasEnrollmentsError(ConflictError):
    """Raised when deleting a class that still has active enrollments."""

    pass


class NotEnrolledError(ConflictError):
    """Raised when student has no active enrollment in the class."""

    pass


class AlreadyEnrolledError(ConflictError):
    """Raised when student is already actively enrolled in the class."""

    pass


class NoSeatsAvailableError(ConflictError):
    """Raised when a class has no free seat left."""

    pass


class ClassNotEnrollableError(ConflictError):
    """Raised when a class status does not accept new enrollments."""

    pass


class AlreadyApprovedError(ConflictError):
    """Raised when a candidate has already been approved."""

    pass


class IllegalTransitionError(ConflictError):
    """Raised when a class status change is not allowed.

    Attributes:
        current: Status the class is in.
        requested: Status that was requested.
    """

    def __init__(self, message: str, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(message, {"from": current, "to": requested})


class CannotDeleteApprovedError(ConflictError):
    """Raised when deleting a candidate that was already approved."""

    pass
