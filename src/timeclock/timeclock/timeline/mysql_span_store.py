from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import CaptureMethod, CategoryKind, OrderStatus, SpanKind
from ..core.exceptions import EmployeeNotFound, StoreConflict
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, db_transaction, fetchall, fetchone
from .model import AttendanceSpan, BreakSpan, Category, WorkOrder, WorkSpan
from .store import SpanStore, SpanTransaction

_ATTENDANCE_SELECT = """
    SELECT attendance_id, employee_id, clock_in, clock_out,
           clock_in_method, clock_out_method, clock_in_location, clock_out_location,
           clock_in_note, clock_out_note, total_hours
    FROM attendance_records
"""

_BREAK_SELECT = """
    SELECT break_id, employee_id, attendance_id, category_id,
           start_time, end_time, duration_minutes, notes
    FROM break_records
"""

_WORK_SELECT = """
    SELECT session_id, employee_id, order_id, category_id, task_description,
           start_time, end_time, duration_minutes, hourly_rate, is_billable,
           cost, notes, method
    FROM work_sessions
"""


def _to_attendance(r: dict) -> AttendanceSpan:
    return AttendanceSpan(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        started_at=r["clock_in"],
        ended_at=r.get("clock_out"),
        clock_in_method=CaptureMethod(r["clock_in_method"]),
        clock_out_method=CaptureMethod(r["clock_out_method"]) if r.get("clock_out_method") else None,
        clock_in_location=r.get("clock_in_location"),
        clock_out_location=r.get("clock_out_location"),
        clock_in_note=r.get("clock_in_note"),
        clock_out_note=r.get("clock_out_note"),
        total_hours=as_float(r.get("total_hours")),
    )


def _to_break(r: dict) -> BreakSpan:
    return BreakSpan(
        break_id=int(r["break_id"]),
        employee_id=int(r["employee_id"]),
        attendance_id=r.get("attendance_id"),
        category_id=int(r["category_id"]),
        started_at=r["start_time"],
        ended_at=r.get("end_time"),
        duration_minutes=as_float(r.get("duration_minutes")),
        note=r.get("notes"),
    )


def _to_work(r: dict) -> WorkSpan:
    return WorkSpan(
        session_id=int(r["session_id"]),
        employee_id=int(r["employee_id"]),
        order_id=r.get("order_id"),
        category_id=r.get("category_id"),
        task_description=r.get("task_description"),
        started_at=r["start_time"],
        ended_at=r.get("end_time"),
        duration_minutes=as_float(r.get("duration_minutes")),
        hourly_rate=as_float(r.get("hourly_rate")),
        is_billable=as_bool(r.get("is_billable")),
        cost=as_float(r.get("cost")),
        note=r.get("notes"),
        method=CaptureMethod(r.get("method") or CaptureMethod.MANUAL.value),
    )


def _day_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start_date, datetime.min.time()),
        datetime.combine(end_date + timedelta(days=1), datetime.min.time()),
    )


class MySQLSpanTransaction(SpanTransaction):
    def __init__(self, cur):
        self._cur = cur

    def _one(self, sql: str, params: tuple):
        self._cur.execute(sql, params)
        return fetchone(self._cur)

    def _insert(self, kind: SpanKind, sql: str, params: tuple) -> int:
        try:
            self._cur.execute(sql, params)
        except mysql.connector.IntegrityError as exc:
            if exc.errno == errorcode.ER_DUP_ENTRY:
                raise StoreConflict(span_kind=kind) from exc
            raise
        return int(self._cur.lastrowid)

    # -- open spans -------------------------------------------------------

    def open_attendance(self, employee_id: int) -> Optional[AttendanceSpan]:
        r = self._one(
            _ATTENDANCE_SELECT + " WHERE employee_id=%s AND clock_out IS NULL ORDER BY clock_in DESC LIMIT 1",
            (employee_id,),
        )
        return _to_attendance(r) if r else None

    def open_break(self, employee_id: int) -> Optional[BreakSpan]:
        r = self._one(
            _BREAK_SELECT + " WHERE employee_id=%s AND end_time IS NULL ORDER BY start_time DESC LIMIT 1",
            (employee_id,),
        )
        return _to_break(r) if r else None

    def open_work(self, employee_id: int) -> Optional[WorkSpan]:
        r = self._one(
            _WORK_SELECT + " WHERE employee_id=%s AND end_time IS NULL ORDER BY start_time DESC LIMIT 1",
            (employee_id,),
        )
        return _to_work(r) if r else None

    def last_closed_attendance(self, employee_id: int) -> Optional[AttendanceSpan]:
        r = self._one(
            _ATTENDANCE_SELECT + " WHERE employee_id=%s AND clock_out IS NOT NULL ORDER BY clock_out DESC LIMIT 1",
            (employee_id,),
        )
        return _to_attendance(r) if r else None

    # -- by id ------------------------------------------------------------

    def get_attendance(self, attendance_id: int) -> Optional[AttendanceSpan]:
        r = self._one(_ATTENDANCE_SELECT + " WHERE attendance_id=%s FOR UPDATE", (attendance_id,))
        return _to_attendance(r) if r else None

    def get_break(self, break_id: int) -> Optional[BreakSpan]:
        r = self._one(_BREAK_SELECT + " WHERE break_id=%s FOR UPDATE", (break_id,))
        return _to_break(r) if r else None

    def get_work(self, session_id: int) -> Optional[WorkSpan]:
        r = self._one(_WORK_SELECT + " WHERE session_id=%s FOR UPDATE", (session_id,))
        return _to_work(r) if r else None

    # -- inserts ----------------------------------------------------------

    def insert_attendance(self, *, employee_id, started_at, method, location=None, note=None) -> AttendanceSpan:
        new_id = self._insert(
            SpanKind.ATTENDANCE,
            """
            INSERT INTO attendance_records(employee_id, clock_in, clock_in_method, clock_in_location, clock_in_note)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (employee_id, started_at, method.value, location, note),
        )
        return self.get_attendance(new_id)

    def insert_break(self, *, employee_id, attendance_id, category_id, started_at, note=None) -> BreakSpan:
        new_id = self._insert(
            SpanKind.BREAK,
            """
            INSERT INTO break_records(employee_id, attendance_id, category_id, start_time, notes)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (employee_id, attendance_id, category_id, started_at, note),
        )
        return self.get_break(new_id)

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
    ) -> WorkSpan:
        new_id = self._insert(
            SpanKind.WORK,
            """
            INSERT INTO work_sessions(employee_id, order_id, category_id, task_description,
                                      start_time, hourly_rate, is_billable, notes, method)
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                employee_id,
                order_id,
                category_id,
                task_description,
                started_at,
                hourly_rate,
                1 if is_billable else 0,
                note,
                method.value,
            ),
        )
        return self.get_work(new_id)

    # -- updates ----------------------------------------------------------

    def save_attendance(self, span: AttendanceSpan) -> AttendanceSpan:
        self._cur.execute(
            """
            UPDATE attendance_records
            SET clock_in=%s, clock_out=%s, clock_out_method=%s, clock_out_location=%s,
                clock_in_note=%s, clock_out_note=%s, total_hours=%s
            WHERE attendance_id=%s
            """,
            (
                span.started_at,
                span.ended_at,
                span.clock_out_method.value if span.clock_out_method else None,
                span.clock_out_location,
                span.clock_in_note,
                span.clock_out_note,
                span.total_hours,
                span.attendance_id,
            ),
        )
        return self.get_attendance(span.attendance_id)

    def save_break(self, span: BreakSpan) -> BreakSpan:
        self._cur.execute(
            """
            UPDATE break_records
            SET category_id=%s, start_time=%s, end_time=%s, duration_minutes=%s, notes=%s
            WHERE break_id=%s
            """,
            (span.category_id, span.started_at, span.ended_at, span.duration_minutes, span.note, span.break_id),
        )
        return self.get_break(span.break_id)

    def save_work(self, span: WorkSpan) -> WorkSpan:
        self._cur.execute(
            """
            UPDATE work_sessions
            SET category_id=%s, task_description=%s, start_time=%s, end_time=%s,
                duration_minutes=%s, hourly_rate=%s, is_billable=%s, cost=%s, notes=%s
            WHERE session_id=%s
            """,
            (
                span.category_id,
                span.task_description,
                span.started_at,
                span.ended_at,
                span.duration_minutes,
                span.hourly_rate,
                1 if span.is_billable else 0,
                span.cost,
                span.note,
                span.session_id,
            ),
        )
        return self.get_work(span.session_id)

    def delete_attendance(self, attendance_id: int) -> bool:
        self._cur.execute("DELETE FROM attendance_records WHERE attendance_id=%s", (attendance_id,))
        return self._cur.rowcount > 0

    def delete_break(self, break_id: int) -> bool:
        self._cur.execute("DELETE FROM break_records WHERE break_id=%s", (break_id,))
        return self._cur.rowcount > 0

    def delete_work(self, session_id: int) -> bool:
        self._cur.execute("DELETE FROM work_sessions WHERE session_id=%s", (session_id,))
        return self._cur.rowcount > 0

    # -- reference data ---------------------------------------------------

    def get_category(self, category_id: int) -> Optional[Category]:
        r = self._one(
            """
            SELECT category_id, name, kind, is_active, is_productive, is_billable, max_duration_minutes
            FROM categories
            WHERE category_id=%s
            """,
            (category_id,),
        )
        if not r:
            return None
        return Category(
            category_id=int(r["category_id"]),
            name=r["name"],
            kind=CategoryKind(r["kind"]),
            is_active=as_bool(r.get("is_active"), default=True),
            is_productive=as_bool(r.get("is_productive"), default=True),
            is_billable=as_bool(r.get("is_billable")),
            max_duration_minutes=r.get("max_duration_minutes"),
        )

    def get_order_for_update(self, order_id: int) -> Optional[WorkOrder]:
        r = self._one(
            "SELECT order_id, order_number, description, status FROM work_orders WHERE order_id=%s FOR UPDATE",
            (order_id,),
        )
        if not r:
            return None
        return WorkOrder(
            order_id=int(r["order_id"]),
            order_number=r["order_number"],
            description=r.get("description"),
            status=OrderStatus(r["status"]),
        )

    def set_order_status(self, order_id: int, *, expected: OrderStatus, new: OrderStatus) -> bool:
        self._cur.execute(
            "UPDATE work_orders SET status=%s WHERE order_id=%s AND status=%s",
            (new.value, order_id, expected.value),
        )
        return self._cur.rowcount > 0


class MySQLSpanStore(SpanStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self, employee_id: int) -> Iterator[SpanTransaction]:
        with db_transaction(self._conn_factory) as (_, cur):
            # The employee row is the lock for all three of their open-span sets.
            cur.execute("SELECT employee_id FROM employees WHERE employee_id=%s FOR UPDATE", (employee_id,))
            if not fetchone(cur):
                raise EmployeeNotFound()
            yield MySQLSpanTransaction(cur)

    def _first(self, sql: str, params: tuple, mapper):
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            r = fetchone(cur)
            return mapper(r) if r else None

    def _all(self, sql: str, params: tuple, mapper) -> list:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [mapper(r) for r in fetchall(cur)]

    def find_open_attendance(self, employee_id: int) -> Optional[AttendanceSpan]:
        return self._first(
            _ATTENDANCE_SELECT + " WHERE employee_id=%s AND clock_out IS NULL ORDER BY clock_in DESC LIMIT 1",
            (employee_id,),
            _to_attendance,
        )

    def find_open_break(self, employee_id: int) -> Optional[BreakSpan]:
        return self._first(
            _BREAK_SELECT + " WHERE employee_id=%s AND end_time IS NULL ORDER BY start_time DESC LIMIT 1",
            (employee_id,),
            _to_break,
        )

    def find_open_work(self, employee_id: int) -> Optional[WorkSpan]:
        return self._first(
            _WORK_SELECT + " WHERE employee_id=%s AND end_time IS NULL ORDER BY start_time DESC LIMIT 1",
            (employee_id,),
            _to_work,
        )

    def list_open_attendance(self) -> Sequence[AttendanceSpan]:
        return self._all(_ATTENDANCE_SELECT + " WHERE clock_out IS NULL ORDER BY clock_in DESC", (), _to_attendance)

    def list_open_breaks(self) -> Sequence[BreakSpan]:
        return self._all(_BREAK_SELECT + " WHERE end_time IS NULL ORDER BY start_time DESC", (), _to_break)

    def list_open_work(self) -> Sequence[WorkSpan]:
        return self._all(_WORK_SELECT + " WHERE end_time IS NULL ORDER BY start_time ASC", (), _to_work)

    def find_attendance(self, attendance_id: int) -> Optional[AttendanceSpan]:
        return self._first(_ATTENDANCE_SELECT + " WHERE attendance_id=%s", (attendance_id,), _to_attendance)

    def find_break(self, break_id: int) -> Optional[BreakSpan]:
        return self._first(_BREAK_SELECT + " WHERE break_id=%s", (break_id,), _to_break)

    def find_work(self, session_id: int) -> Optional[WorkSpan]:
        return self._first(_WORK_SELECT + " WHERE session_id=%s", (session_id,), _to_work)

    def _between(self, select: str, column: str, mapper, start_date: date, end_date: date, employee_id: Optional[int]):
        lower, upper = _day_bounds(start_date, end_date)
        clauses = [f"{column} >= %s", f"{column} < %s"]
        params: list[object] = [lower, upper]
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        return self._all(
            f"{select} WHERE {' AND '.join(clauses)} ORDER BY {column} ASC",
            tuple(params),
            mapper,
        )

    def attendance_between(self, *, start_date, end_date, employee_id=None) -> Sequence[AttendanceSpan]:
        return self._between(_ATTENDANCE_SELECT, "clock_in", _to_attendance, start_date, end_date, employee_id)

    def breaks_between(self, *, start_date, end_date, employee_id=None) -> Sequence[BreakSpan]:
        return self._between(_BREAK_SELECT, "start_time", _to_break, start_date, end_date, employee_id)

    def work_between(self, *, start_date, end_date, employee_id=None) -> Sequence[WorkSpan]:
        return self._between(_WORK_SELECT, "start_time", _to_work, start_date, end_date, employee_id)
