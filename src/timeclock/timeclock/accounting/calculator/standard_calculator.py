from __future__ import annotations

from .. import time_accountant
from .base import PerformanceCalculator, PerformanceMetrics, PeriodTotals


class StandardPerformanceCalculator(PerformanceCalculator):
    """Standard rule: work time is attendance minus breaks, not the sum of sessions.

    Deriving it keeps efficiency meaningful even when sessions were forgotten
    or left dangling; recorded sessions only feed productivity and idle time.
    """

    def evaluate(self, totals: PeriodTotals) -> PerformanceMetrics:
        calculated = totals.attendance_minutes - totals.break_minutes
        idle = max(0.0, totals.attendance_minutes - totals.break_minutes - totals.work_minutes)
        avg = totals.attendance_minutes / totals.attendance_days if totals.attendance_days else 0.0
        return PerformanceMetrics(
            totals=totals,
            calculated_work_minutes=calculated,
            attendance_efficiency=time_accountant.attendance_efficiency(
                totals.attendance_minutes, totals.break_minutes
            ),
            work_productivity=time_accountant.work_productivity(
                totals.billable_minutes, totals.attendance_minutes, totals.break_minutes
            ),
            idle_minutes=idle,
            avg_attendance_per_day=avg,
        )
