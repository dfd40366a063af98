from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .model import Employee
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)

SUPERVISOR_ROLES = frozenset({Role.DISPATCHER, Role.ADMIN})


@dataclass(frozen=True)
class SessionEmployee:
    """What controllers keep about the caller once credentials are checked."""

    employee_id: int
    employee_number: str
    full_name: str
    role: Role


def _safe_check(hashed: Optional[str], secret: str) -> bool:
    if not hashed or not secret:
        return False
    try:
        return check_password_hash(hashed, secret)
    except ValueError:
        # placeholder or corrupted hashes
        return False


def require_role(current_role: Role, allowed=SUPERVISOR_ROLES) -> None:
    if current_role not in allowed:
        raise AuthorizationError("You do not have permission for this action")


class AuthService:
    """Resolve a caller to an employee id.

    Web callers use email + password, kiosk terminals use employee number +
    PIN. Both end up as the same ``SessionEmployee`` so the trackers never
    see where a request came from beyond its capture method.
    """

    def __init__(self, employees: EmployeeRepository):
        self._employees = employees

    @staticmethod
    def _to_session(employee: Employee) -> SessionEmployee:
        return SessionEmployee(
            employee_id=employee.employee_id,
            employee_number=employee.employee_number,
            full_name=employee.full_name,
            role=employee.role,
        )

    def authenticate(self, email: str, password: str) -> SessionEmployee:
        email = require_non_empty(email, "Email")
        employee = self._employees.get_by_email(email)
        if not employee or not employee.can_log_in or not _safe_check(employee.password_hash, password):
            logger.warning("Web login refused for %s", email)
            raise AuthenticationError("Wrong email or password")
        return self._to_session(employee)

    def authenticate_kiosk(self, employee_number: str, pin: str) -> SessionEmployee:
        employee_number = require_non_empty(employee_number, "Employee number")
        employee = self._employees.get_by_employee_number(employee_number)
        if not employee or not employee.can_log_in or not _safe_check(employee.pin_hash, pin):
            logger.warning("Kiosk login refused for employee number %s", employee_number)
            raise AuthenticationError("Invalid employee number or PIN")
        return self._to_session(employee)

    def resolve_employee_number(self, employee_number: str) -> SessionEmployee:
        """Simplified kiosk flow: badge/number only, no PIN."""
        employee_number = require_non_empty(employee_number, "Employee number")
        employee = self._employees.get_by_employee_number(employee_number)
        if not employee or not employee.can_log_in:
            raise AuthenticationError("Unknown or inactive employee number")
        return self._to_session(employee)
