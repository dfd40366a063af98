from __future__ import annotations

from datetime import date, datetime
from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import CaptureMethod, OrderStatus
from .model import AttendanceSpan, BreakSpan, Category, WorkOrder, WorkSpan


class SpanTransaction(Protocol):
    """Reads and writes inside one employee's locked transaction.

    Everything done through this object commits together when the
    ``SpanStore.transaction`` block exits normally. Inserting a second open
    span of the same kind for the employee raises ``StoreConflict``.
    """

    def open_attendance(self, employee_id: int) -> Optional[AttendanceSpan]:
        raise NotImplementedError

    def open_break(self, employee_id: int) -> Optional[BreakSpan]:
        raise NotImplementedError

    def open_work(self, employee_id: int) -> Optional[WorkSpan]:
        raise NotImplementedError

    def last_closed_attendance(self, employee_id: int) -> Optional[AttendanceSpan]:
        raise NotImplementedError

    def get_attendance(self, attendance_id: int) -> Optional[AttendanceSpan]:
        raise NotImplementedError

    def get_break(self, break_id: int) -> Optional[BreakSpan]:
        raise NotImplementedError

    def get_work(self, session_id: int) -> Optional[WorkSpan]:
        raise NotImplementedError

    def insert_attendance(
        self,
        *,
        employee_id: int,
        started_at: datetime,
        method: CaptureMethod,
        location: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AttendanceSpan:
        raise NotImplementedError

    def insert_break(
        self,
        *,
        employee_id: int,
        attendance_id: Optional[int],
        category_id: int,
        started_at: datetime,
        note: Optional[str] = None,
    ) -> BreakSpan:
        raise NotImplementedError

    def insert_work(
        self,
        *,
        employee_id: int,
        order_id: Optional[int],
        category_id: Optional[int],
        task_description: Optional[str],
        started_at: datetime,
        hourly_rate: Optional[float],
        is_billable: bool,
        note: Optional[str],
        method: CaptureMethod,
    ) -> WorkSpan:
        raise NotImplementedError

    def save_attendance(self, span: AttendanceSpan) -> AttendanceSpan:
        raise NotImplementedError

    def save_break(self, span: BreakSpan) -> BreakSpan:
        raise NotImplementedError

    def save_work(self, span: WorkSpan) -> WorkSpan:
        raise NotImplementedError

    def delete_attendance(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def delete_break(self, break_id: int) -> bool:
        raise NotImplementedError

    def delete_work(self, session_id: int) -> bool:
        raise NotImplementedError

    def get_category(self, category_id: int) -> Optional[Category]:
        raise NotImplementedError

    def get_order_for_update(self, order_id: int) -> Optional[WorkOrder]:
        """Read an order and hold its row until the transaction ends."""

        raise NotImplementedError

    def set_order_status(self, order_id: int, *, expected: OrderStatus, new: OrderStatus) -> bool:
        """Conditional status change; False when the order is no longer ``expected``."""

        raise NotImplementedError


class SpanStore(Protocol):
    """The record store holding attendance, break and work spans."""

    def transaction(self, employee_id: int) -> ContextManager[SpanTransaction]:
        """Lock the employee's open-span rows for one check-and-write unit.

        Raises ``EmployeeNotFound`` when the employee does not exist.
        """

        raise NotImplementedError

    def find_open_attendance(self, employee_id: int) -> Optional[AttendanceSpan]:
        raise NotImplementedError

    def find_open_break(self, employee_id: int) -> Optional[BreakSpan]:
        raise NotImplementedError

    def find_open_work(self, employee_id: int) -> Optional[WorkSpan]:
        raise NotImplementedError

    def list_open_attendance(self) -> Sequence[AttendanceSpan]:
        raise NotImplementedError

    def list_open_breaks(self) -> Sequence[BreakSpan]:
        raise NotImplementedError

    def list_open_work(self) -> Sequence[WorkSpan]:
        raise NotImplementedError

    def find_attendance(self, attendance_id: int) -> Optional[AttendanceSpan]:
        raise NotImplementedError

    def find_break(self, break_id: int) -> Optional[BreakSpan]:
        raise NotImplementedError

    def find_work(self, session_id: int) -> Optional[WorkSpan]:
        raise NotImplementedError

    def attendance_between(
        self, *, start_date: date, end_date: date, employee_id: Optional[int] = None
    ) -> Sequence[AttendanceSpan]:
        """Spans whose start falls on a day in [start_date, end_date]."""

        raise NotImplementedError

    def breaks_between(
        self, *, start_date: date, end_date: date, employee_id: Optional[int] = None
    ) -> Sequence[BreakSpan]:
        raise NotImplementedError

    def work_between(
        self, *, start_date: date, end_date: date, employee_id: Optional[int] = None
    ) -> Sequence[WorkSpan]:
        raise NotImplementedError
