from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager, nullcontext
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.timeclock.timeclock.container import assemble
from src.timeclock.timeclock.core.enums import CategoryKind, OrderStatus, Role, SpanKind
from src.timeclock.timeclock.core.exceptions import EmployeeNotFound, StoreConflict
from src.timeclock.timeclock.employees.model import Employee
from src.timeclock.timeclock.timeline.model import AttendanceSpan, BreakSpan, Category, WorkOrder, WorkSpan

T0 = datetime(2026, 3, 2, 8, 0, 0)

_MISSING = object()


def _hash(secret: str) -> str:
    return generate_password_hash(secret, method="pbkdf2:sha256:1000")


class InMemoryEmployees:
    def __init__(self, employees):
        self._by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self._by_id.get(int(employee_id))

    def get_by_email(self, email: str) -> Optional[Employee]:
        return next((e for e in self._by_id.values() if e.email == email), None)

    def get_by_employee_number(self, employee_number: str) -> Optional[Employee]:
        return next((e for e in self._by_id.values() if e.employee_number == employee_number), None)

    def list_active(self, *, role=None):
        items = [e for e in self._by_id.values() if e.can_log_in and (role is None or e.role == role)]
        return sorted(items, key=lambda e: (e.last_name, e.first_name))


class _InMemoryTransaction:
    """Writes go straight to the store's dicts; an undo log reverts them on error."""

    def __init__(self, store: "InMemorySpanStore"):
        self._store = store
        self._undo: list[tuple[dict, int, object]] = []

    def _write(self, table: dict, key: int, value) -> None:
        self._undo.append((table, key, table.get(key, _MISSING)))
        if value is _MISSING:
            del table[key]
        else:
            table[key] = value

    def rollback(self) -> None:
        for table, key, previous in reversed(self._undo):
            if previous is _MISSING:
                table.pop(key, None)
            else:
                table[key] = previous
        self._undo.clear()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self._store.failing:
            raise RuntimeError(f"simulated store failure in {operation}")

    def open_attendance(self, employee_id):
        return self._store.find_open_attendance(employee_id)

    def open_break(self, employee_id):
        return self._store.find_open_break(employee_id)

    def open_work(self, employee_id):
        return self._store.find_open_work(employee_id)

    def last_closed_attendance(self, employee_id):
        closed = [s for s in self._store.attendance.values() if s.employee_id == employee_id and not s.is_open]
        return max(closed, key=lambda s: s.ended_at, default=None)

    def get_attendance(self, attendance_id):
        return self._store.attendance.get(attendance_id)

    def get_break(self, break_id):
        return self._store.breaks.get(break_id)

    def get_work(self, session_id):
        return self._store.work.get(session_id)

    def _insert(self, kind: SpanKind, table: dict, span):
        if self._store.before_insert is not None:
            self._store.before_insert(kind)
        with self._store.write_lock:
            if any(s.employee_id == span.employee_id and s.is_open for s in table.values()):
                raise StoreConflict(span_kind=kind)
            self._write(table, self._id_of(span), span)
        return span

    @staticmethod
    def _id_of(span) -> int:
        if isinstance(span, AttendanceSpan):
            return span.attendance_id
        if isinstance(span, BreakSpan):
            return span.break_id
        return span.session_id

    def insert_attendance(self, *, employee_id, started_at, method, location=None, note=None):
        span = AttendanceSpan(
            attendance_id=next(self._store.ids),
            employee_id=employee_id,
            started_at=started_at,
            clock_in_method=method,
            clock_in_location=location,
            clock_in_note=note,
        )
        return self._insert(SpanKind.ATTENDANCE, self._store.attendance, span)

    def insert_break(self, *, employee_id, attendance_id, category_id, started_at, note=None):
        span = BreakSpan(
            break_id=next(self._store.ids),
            employee_id=employee_id,
            attendance_id=attendance_id,
            category_id=category_id,
            started_at=started_at,
            note=note,
        )
        return self._insert(SpanKind.BREAK, self._store.breaks, span)

    def insert_work(
        self,
        *,
        employee_id,
        order_id,
        category_id,
        task_description,
        started_at,
        hourly_rate,
        is_billable,
        note,
        method,
    ):
        span = WorkSpan(
            session_id=next(self._store.ids),
            employee_id=employee_id,
            order_id=order_id,
            category_id=category_id,
            task_description=task_description,
            started_at=started_at,
            hourly_rate=hourly_rate,
            is_billable=is_billable,
            note=note,
            method=method,
        )
        return self._insert(SpanKind.WORK, self._store.work, span)

    def save_attendance(self, span):
        self._maybe_fail("save_attendance")
        self._write(self._store.attendance, span.attendance_id, span)
        return span

    def save_break(self, span):
        self._maybe_fail("save_break")
        self._write(self._store.breaks, span.break_id, span)
        return span

    def save_work(self, span):
        self._maybe_fail("save_work")
        self._write(self._store.work, span.session_id, span)
        return span

    def _delete(self, table: dict, key: int) -> bool:
        if key not in table:
            return False
        self._write(table, key, _MISSING)
        return True

    def delete_attendance(self, attendance_id):
        return self._delete(self._store.attendance, attendance_id)

    def delete_break(self, break_id):
        return self._delete(self._store.breaks, break_id)

    def delete_work(self, session_id):
        return self._delete(self._store.work, session_id)

    def get_category(self, category_id):
        return self._store.categories.get(category_id)

    def get_order_for_update(self, order_id):
        return self._store.orders.get(order_id)

    def set_order_status(self, order_id, *, expected, new):
        order = self._store.orders.get(order_id)
        if order is None or order.status != expected:
            return False
        self._write(self._store.orders, order_id, replace(order, status=new))
        return True


class InMemorySpanStore:
    """SpanStore over dicts.

    ``lock_rows=False`` disables the per-employee lock so tests can drive two
    transactions into the uniqueness check at the same time.
    """

    def __init__(self, employee_ids, *, lock_rows: bool = True):
        self.employee_ids = set(employee_ids)
        self.attendance: dict[int, AttendanceSpan] = {}
        self.breaks: dict[int, BreakSpan] = {}
        self.work: dict[int, WorkSpan] = {}
        self.categories: dict[int, Category] = {}
        self.orders: dict[int, WorkOrder] = {}
        self.ids = itertools.count(1)
        self.write_lock = threading.Lock()
        self.lock_rows = lock_rows
        self.before_insert = None
        self.failing: set[str] = set()
        self._row_locks = {eid: threading.Lock() for eid in self.employee_ids}

    @contextmanager
    def transaction(self, employee_id):
        if employee_id not in self.employee_ids:
            raise EmployeeNotFound()
        lock = self._row_locks[employee_id] if self.lock_rows else nullcontext()
        with lock:
            tx = _InMemoryTransaction(self)
            try:
                yield tx
            except BaseException:
                tx.rollback()
                raise

    @staticmethod
    def _open(table: dict, employee_id):
        return next((s for s in list(table.values()) if s.employee_id == employee_id and s.is_open), None)

    def find_open_attendance(self, employee_id):
        return self._open(self.attendance, employee_id)

    def find_open_break(self, employee_id):
        return self._open(self.breaks, employee_id)

    def find_open_work(self, employee_id):
        return self._open(self.work, employee_id)

    def list_open_attendance(self):
        return [s for s in self.attendance.values() if s.is_open]

    def list_open_breaks(self):
        return [s for s in self.breaks.values() if s.is_open]

    def list_open_work(self):
        return [s for s in self.work.values() if s.is_open]

    def find_attendance(self, attendance_id):
        return self.attendance.get(attendance_id)

    def find_break(self, break_id):
        return self.breaks.get(break_id)

    def find_work(self, session_id):
        return self.work.get(session_id)

    @staticmethod
    def _between(table: dict, start_date, end_date, employee_id):
        items = [
            s
            for s in table.values()
            if start_date <= s.started_at.date() <= end_date and (employee_id is None or s.employee_id == employee_id)
        ]
        return sorted(items, key=lambda s: s.started_at)

    def attendance_between(self, *, start_date, end_date, employee_id=None):
        return self._between(self.attendance, start_date, end_date, employee_id)

    def breaks_between(self, *, start_date, end_date, employee_id=None):
        return self._between(self.breaks, start_date, end_date, employee_id)

    def work_between(self, *, start_date, end_date, employee_id=None):
        return self._between(self.work, start_date, end_date, employee_id)


def at(minutes: float) -> datetime:
    """Test clock: ``minutes`` after 08:00 on Monday 2026-03-02."""
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def employees():
    return InMemoryEmployees(
        [
            Employee(
                employee_id=1,
                employee_number="E001",
                first_name="Erik",
                last_name="Berg",
                role=Role.EMPLOYEE,
                email="erik@example.com",
                hourly_rate=42.5,
                pin_hash=_hash("1234"),
                password_hash=_hash("erik123"),
            ),
            Employee(
                employee_id=2,
                employee_number="E002",
                first_name="Mia",
                last_name="Lund",
                role=Role.EMPLOYEE,
                email="mia@example.com",
                hourly_rate=39.0,
                pin_hash=_hash("4321"),
                password_hash=_hash("mia123"),
            ),
            Employee(
                employee_id=3,
                employee_number="D001",
                first_name="Dana",
                last_name="Dispatch",
                role=Role.DISPATCHER,
                email="dana@example.com",
                pin_hash=_hash("8888"),
                password_hash=_hash("dispatch123"),
            ),
            Employee(
                employee_id=4,
                employee_number="E004",
                first_name="Olaf",
                last_name="Archived",
                role=Role.EMPLOYEE,
                email="olaf@example.com",
                is_active=False,
                archived_at=datetime(2026, 1, 1),
                pin_hash=_hash("0000"),
                password_hash=_hash("olaf123"),
            ),
        ]
    )


def _seed(store: InMemorySpanStore) -> InMemorySpanStore:
    store.categories.update(
        {
            1: Category(1, "Coffee break", CategoryKind.BREAK, is_productive=False),
            2: Category(2, "Lunch break", CategoryKind.BREAK, is_productive=False, max_duration_minutes=30),
            3: Category(3, "Workshop cleaning", CategoryKind.WORK),
            4: Category(4, "Customer support", CategoryKind.WORK, is_billable=True),
            5: Category(5, "Training", CategoryKind.OTHER, is_productive=False),
            6: Category(6, "Old smoke break", CategoryKind.BREAK, is_active=False),
            7: Category(7, "Retired activity", CategoryKind.WORK, is_active=False),
        }
    )
    store.orders.update(
        {
            1: WorkOrder(1, "WO-1001", OrderStatus.CREATED, "Brake service"),
            2: WorkOrder(2, "WO-1002", OrderStatus.IN_PROGRESS, "Tyre change"),
            3: WorkOrder(3, "WO-1003", OrderStatus.COMPLETED, "Oil change"),
            4: WorkOrder(4, "WO-1004", OrderStatus.CANCELLED, "Cancelled inspection"),
        }
    )
    return store


@pytest.fixture
def store():
    return _seed(InMemorySpanStore({1, 2, 3, 4}))


@pytest.fixture
def unlocked_store():
    return _seed(InMemorySpanStore({1, 2, 3, 4}, lock_rows=False))


@pytest.fixture
def container(store, employees):
    return assemble(span_store=store, employees_repo=employees)


@pytest.fixture
def presence(container):
    return container.presence_tracker


@pytest.fixture
def breaks(container):
    return container.break_tracker


@pytest.fixture
def work(container):
    return container.work_tracker


@pytest.fixture
def performance(container):
    return container.performance_aggregator


@pytest.fixture
def clock():
    return at
