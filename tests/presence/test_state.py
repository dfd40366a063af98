from datetime import datetime

from src.timeclock.timeclock.core.enums import EmployeeState
from src.timeclock.timeclock.timeline.model import AttendanceSpan, BreakSpan, WorkSpan
from src.timeclock.timeclock.timeline.state import (
    BREAK_DURING_WORK,
    BREAK_WITHOUT_ATTENDANCE,
    WORK_WITHOUT_ATTENDANCE,
    derive_all,
    derive_state,
)

T = datetime(2026, 3, 2, 8, 0, 0)

ATTENDANCE = AttendanceSpan(attendance_id=1, employee_id=1, started_at=T)
BREAK = BreakSpan(break_id=1, employee_id=1, category_id=1, started_at=T)
SESSION = WorkSpan(session_id=1, employee_id=1, started_at=T, order_id=1)


def test_states_follow_open_spans():
    assert derive_state(1, None, None, None).state == EmployeeState.ABSENT
    assert derive_state(1, ATTENDANCE, None, None).state == EmployeeState.PRESENT_IDLE
    assert derive_state(1, ATTENDANCE, BREAK, None).state == EmployeeState.PRESENT_BREAK
    assert derive_state(1, ATTENDANCE, None, SESSION).state == EmployeeState.PRESENT_WORKING


def test_illegal_combinations_are_reported():
    assert derive_state(1, None, None, SESSION).anomalies == [WORK_WITHOUT_ATTENDANCE]
    assert derive_state(1, None, BREAK, None).anomalies == [BREAK_WITHOUT_ATTENDANCE]
    assert derive_state(1, ATTENDANCE, BREAK, SESSION).anomalies == [BREAK_DURING_WORK]
    assert derive_state(1, ATTENDANCE, None, SESSION).is_consistent


def test_derive_all_groups_by_employee():
    other = AttendanceSpan(attendance_id=2, employee_id=2, started_at=T)

    states = derive_all([ATTENDANCE, other], [BREAK], [])

    assert list(states) == [1, 2]
    assert states[1].state == EmployeeState.PRESENT_BREAK
    assert states[2].state == EmployeeState.PRESENT_IDLE
