from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..accounting import time_accountant
from ..common.datetime_utils import now_local
from ..common.validators import optional_text
from ..core.exceptions import AlreadyPresent, NotPresent, SpanNotFound, StoreConflict, ValidationError
from ..timeline.model import AttendanceSpan
from ..timeline.state import EmployeeStatus, derive_all, derive_state
from ..timeline.store import SpanStore
from .model import AttendanceCorrection, ClockInRequest, ClockOutRequest

if TYPE_CHECKING:
    from ..breaks.service import BreakTracker

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Owns clock-in and clock-out, the root of every employee's state machine.

    Breaks and work sessions are only legal while an attendance span is open.
    Attendance is authoritative: clock-out always goes through even when the
    break it tries to close first cannot be closed. A forced clock-out closes
    only the attendance span; open breaks and sessions stay open and show up
    in ``anomalies()``.
    """

    def __init__(self, store: SpanStore, breaks: "BreakTracker"):
        self._store = store
        self._breaks = breaks

    def clock_in(
        self,
        employee_id: int,
        request: Optional[ClockInRequest] = None,
        *,
        now: datetime | None = None,
    ) -> AttendanceSpan:
        request = request or ClockInRequest()
        now = now or now_local()

        try:
            with self._store.transaction(employee_id) as tx:
                if tx.open_attendance(employee_id):
                    raise AlreadyPresent()
                span = tx.insert_attendance(
                    employee_id=employee_id,
                    started_at=now,
                    method=request.method,
                    location=request.location,
                    note=request.note,
                )
        except StoreConflict as exc:
            raise AlreadyPresent() from exc

        logger.info(
            "Clocked in employee=%s attendance=%s method=%s location=%s",
            employee_id,
            span.attendance_id,
            request.method.value,
            request.location,
        )
        return span

    def clock_out(
        self,
        employee_id: int,
        request: Optional[ClockOutRequest] = None,
        *,
        now: datetime | None = None,
    ) -> AttendanceSpan:
        request = request or ClockOutRequest()
        now = now or now_local()

        if self._store.find_open_attendance(employee_id) is None:
            raise NotPresent()

        if not request.force:
            # Own transaction; a failure here never blocks the clock-out.
            self._breaks.auto_end(employee_id, now=now)

        with self._store.transaction(employee_id) as tx:
            current = tx.open_attendance(employee_id)
            if current is None:
                raise NotPresent()
            span = tx.save_attendance(
                replace(
                    current,
                    ended_at=now,
                    clock_out_method=request.method,
                    clock_out_location=request.location,
                    clock_out_note=request.note,
                    total_hours=time_accountant.duration_hours(current.started_at, now),
                )
            )
            left_break = tx.open_break(employee_id)
            left_session = tx.open_work(employee_id)

        if left_break is not None:
            logger.warning("Clock-out left break=%s open for employee=%s", left_break.break_id, employee_id)
        if left_session is not None:
            logger.warning(
                "Clock-out left work session=%s open for employee=%s", left_session.session_id, employee_id
            )
        logger.info(
            "Clocked out employee=%s attendance=%s hours=%.4f method=%s",
            employee_id,
            span.attendance_id,
            span.total_hours or 0.0,
            request.method.value,
        )
        return span

    # -- queries ----------------------------------------------------------

    def active_presence(self, employee_id: int) -> Optional[AttendanceSpan]:
        return self._store.find_open_attendance(employee_id)

    def all_active_presence(self) -> Sequence[AttendanceSpan]:
        return self._store.list_open_attendance()

    def state(self, employee_id: int) -> EmployeeStatus:
        return derive_state(
            employee_id,
            self._store.find_open_attendance(employee_id),
            self._store.find_open_break(employee_id),
            self._store.find_open_work(employee_id),
        )

    def all_states(self) -> Dict[int, EmployeeStatus]:
        return derive_all(
            self._store.list_open_attendance(),
            self._store.list_open_breaks(),
            self._store.list_open_work(),
        )

    def anomalies(self) -> List[EmployeeStatus]:
        """Employees whose open spans form a combination the state machine forbids."""
        return [s for s in self.all_states().values() if s.anomalies]

    # -- administrative corrections --------------------------------------

    def correct_attendance(self, attendance_id: int, correction: AttendanceCorrection) -> AttendanceSpan:
        existing = self._store.find_attendance(attendance_id)
        if existing is None:
            raise SpanNotFound()

        with self._store.transaction(existing.employee_id) as tx:
            current = tx.get_attendance(attendance_id)
            if current is None:
                raise SpanNotFound()
            if correction.ended_at is not None and current.is_open:
                raise ValidationError("Open attendance is closed by clock-out, not by correction")

            started_at = correction.started_at or current.started_at
            ended_at = correction.ended_at or current.ended_at
            if ended_at is not None and ended_at < started_at:
                raise ValidationError("Clock-out must not be before clock-in")

            updated = replace(
                current,
                started_at=started_at,
                ended_at=ended_at,
                clock_in_note=optional_text(correction.clock_in_note) or current.clock_in_note,
                clock_out_note=optional_text(correction.clock_out_note) or current.clock_out_note,
                total_hours=(
                    time_accountant.duration_hours(started_at, ended_at) if ended_at is not None else None
                ),
            )
            span = tx.save_attendance(updated)

        logger.info("Attendance corrected attendance=%s employee=%s", attendance_id, span.employee_id)
        return span

    def delete_attendance(self, attendance_id: int) -> None:
        existing = self._store.find_attendance(attendance_id)
        if existing is None:
            raise SpanNotFound()

        with self._store.transaction(existing.employee_id) as tx:
            current = tx.get_attendance(attendance_id)
            if current is None:
                raise SpanNotFound()
            if current.is_open and (tx.open_break(current.employee_id) or tx.open_work(current.employee_id)):
                raise ValidationError("End the open break or work session before deleting open attendance")
            tx.delete_attendance(attendance_id)

        logger.info("Attendance deleted attendance=%s employee=%s", attendance_id, existing.employee_id)
