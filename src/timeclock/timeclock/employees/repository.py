from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Employee


class EmployeeRepository(Protocol):
    """Repository interface for Employee.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_employee_number(self, employee_number: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_active(self, *, role: Optional[Role] = None) -> Sequence[Employee]:
        """Active, non-archived employees ordered by last name."""

        raise NotImplementedError
