from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..core.enums import EmployeeState
from .model import AttendanceSpan, BreakSpan, WorkSpan

# Anomaly codes for open-span combinations the state machine never produces
# on its own (clock-out with a session still open, a failed break auto-end).
WORK_WITHOUT_ATTENDANCE = "open_work_without_attendance"
BREAK_WITHOUT_ATTENDANCE = "open_break_without_attendance"
BREAK_DURING_WORK = "open_break_and_work"


@dataclass(frozen=True)
class EmployeeStatus:
    """Snapshot of one employee's open spans and the state they imply."""

    employee_id: int
    state: EmployeeState
    attendance: Optional[AttendanceSpan] = None
    active_break: Optional[BreakSpan] = None
    active_session: Optional[WorkSpan] = None
    anomalies: List[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.anomalies


def derive_state(
    employee_id: int,
    attendance: Optional[AttendanceSpan],
    active_break: Optional[BreakSpan],
    active_session: Optional[WorkSpan],
) -> EmployeeStatus:
    anomalies: List[str] = []
    if attendance is None:
        if active_session is not None:
            anomalies.append(WORK_WITHOUT_ATTENDANCE)
        if active_break is not None:
            anomalies.append(BREAK_WITHOUT_ATTENDANCE)
        state = EmployeeState.ABSENT
    elif active_break is not None:
        if active_session is not None:
            anomalies.append(BREAK_DURING_WORK)
        state = EmployeeState.PRESENT_BREAK
    elif active_session is not None:
        state = EmployeeState.PRESENT_WORKING
    else:
        state = EmployeeState.PRESENT_IDLE

    return EmployeeStatus(
        employee_id=employee_id,
        state=state,
        attendance=attendance,
        active_break=active_break,
        active_session=active_session,
        anomalies=anomalies,
    )


def derive_all(
    attendance: Sequence[AttendanceSpan],
    breaks: Sequence[BreakSpan],
    sessions: Sequence[WorkSpan],
) -> Dict[int, EmployeeStatus]:
    """State of every employee that has at least one open span."""
    by_attendance = {s.employee_id: s for s in attendance}
    by_break = {s.employee_id: s for s in breaks}
    by_session = {s.employee_id: s for s in sessions}
    employee_ids = sorted(set(by_attendance) | set(by_break) | set(by_session))
    return {
        eid: derive_state(eid, by_attendance.get(eid), by_break.get(eid), by_session.get(eid))
        for eid in employee_ids
    }
