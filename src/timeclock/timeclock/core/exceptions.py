from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"
    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    code = "authentication_failed"
    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"
    status_code = 403


class TimelineError(DomainError):
    """A requested transition is illegal for the employee's current state.

    Every subclass carries a stable ``code`` and a default message that does
    not depend on who asked.
    """

    message = "Transition not allowed"
    status_code = 409

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class AlreadyPresent(TimelineError):
    code = "already_present"
    message = "Employee is already clocked in"


class NotPresent(TimelineError):
    code = "not_present"
    message = "Employee is not clocked in"


class AlreadyOnBreak(TimelineError):
    code = "already_on_break"
    message = "Employee already has an active break"


class NoActiveBreak(TimelineError):
    code = "no_active_break"
    message = "Employee has no active break"


class AlreadyWorking(TimelineError):
    code = "already_working"
    message = "Employee already has an active work session"


class NoActiveSession(TimelineError):
    code = "no_active_session"
    message = "Employee has no active work session"


class OnBreak(TimelineError):
    code = "on_break"
    message = "Employee cannot start a work session while on break"


class InvalidCategory(TimelineError):
    code = "invalid_category"
    message = "Category is missing, inactive or of the wrong kind"
    status_code = 400


class OrderNotFound(TimelineError):
    code = "order_not_found"
    message = "Work order not found"
    status_code = 404


class OrderNotActive(TimelineError):
    code = "order_not_active"
    message = "Work order is not active"


class ConflictingTarget(TimelineError):
    code = "conflicting_target"
    message = "A work session needs exactly one of order or category"
    status_code = 400


class EmployeeNotFound(TimelineError):
    code = "employee_not_found"
    message = "Employee not found"
    status_code = 404


class SpanNotFound(TimelineError):
    code = "span_not_found"
    message = "Record not found"
    status_code = 404


class StoreConflict(TimelineError):
    """The store rejected a second open span for the same employee.

    Raised by store implementations when the one-open-span uniqueness rule
    fires. Trackers translate it into the matching state error.
    """

    code = "store_conflict"
    message = "Concurrent change detected, please retry"

    def __init__(self, message: Optional[str] = None, *, span_kind=None):
        super().__init__(message)
        self.span_kind = span_kind
