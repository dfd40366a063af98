from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = """
    employee_id, employee_number, first_name, last_name, email, role,
    is_active, hourly_rate, pin_hash, password_hash, archived_at
"""


def _to_employee(row: dict) -> Employee:
    return Employee(
        employee_id=int(row["employee_id"]),
        employee_number=row["employee_number"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row.get("email"),
        role=Role(row["role"]),
        is_active=as_bool(row.get("is_active"), default=True),
        hourly_rate=as_float(row.get("hourly_rate")),
        pin_hash=row.get("pin_hash"),
        password_hash=row.get("password_hash"),
        archived_at=row.get("archived_at"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, column: str, value) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE {column}=%s", (value,))
            row = fetchone(cur)
            return _to_employee(row) if row else None

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self._get_one("employee_id", int(employee_id))

    def get_by_email(self, email: str) -> Optional[Employee]:
        return self._get_one("email", email)

    def get_by_employee_number(self, employee_number: str) -> Optional[Employee]:
        return self._get_one("employee_number", employee_number)

    def list_active(self, *, role: Optional[Role] = None) -> Sequence[Employee]:
        clauses = ["is_active=1", "archived_at IS NULL"]
        params: list[object] = []
        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM employees
                WHERE {" AND ".join(clauses)}
                ORDER BY last_name, first_name
                """,
                tuple(params),
            )
            return [_to_employee(r) for r in fetchall(cur)]
