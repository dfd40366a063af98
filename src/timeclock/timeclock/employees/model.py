from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Employee:
    """Domain entity: Employee.

    Plain data object. Archived employees keep their row (spans reference
    it) and are refused by authentication.
    """

    employee_id: int
    employee_number: str
    first_name: str
    last_name: str
    role: Role
    email: Optional[str] = None
    is_active: bool = True
    hourly_rate: Optional[float] = None
    pin_hash: Optional[str] = None
    password_hash: Optional[str] = None
    archived_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def can_log_in(self) -> bool:
        return self.is_active and self.archived_at is None
