from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Sequence

from ..accounting import time_accountant
from ..accounting.calculator.base import PerformanceCalculator, PerformanceMetrics, PeriodTotals
from ..accounting.calculator.standard_calculator import StandardPerformanceCalculator
from ..common.datetime_utils import now_local, week_start
from ..common.validators import coerce_enum
from ..core.constants import RANKING_TIE_THRESHOLD, STATISTICS_BUCKET_LIMIT
from ..core.enums import Role, StatisticsPeriod
from ..core.exceptions import EmployeeNotFound, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..timeline.model import AttendanceSpan, BreakSpan, WorkSpan
from ..timeline.store import SpanStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeOverview:
    employee: Employee
    totals: PeriodTotals

    @property
    def idle_minutes(self) -> float:
        return max(0.0, self.totals.attendance_minutes - self.totals.break_minutes - self.totals.work_minutes)


@dataclass(frozen=True)
class RankingEntry:
    rank: int
    employee: Employee
    metrics: PerformanceMetrics


@dataclass(frozen=True)
class DailySummary:
    employee_id: int
    day: date
    metrics: PerformanceMetrics
    attendance: List[AttendanceSpan] = field(default_factory=list)
    breaks: List[BreakSpan] = field(default_factory=list)
    sessions: List[WorkSpan] = field(default_factory=list)


@dataclass(frozen=True)
class StatisticsBucket:
    label: str
    start: date
    metrics: PerformanceMetrics


@dataclass(frozen=True)
class KioskOverview:
    today: PerformanceMetrics
    week: PerformanceMetrics
    team_rank: Optional[int]
    team_size: int
    team_average_efficiency: float


@dataclass
class _Spans:
    attendance: List[AttendanceSpan] = field(default_factory=list)
    breaks: List[BreakSpan] = field(default_factory=list)
    sessions: List[WorkSpan] = field(default_factory=list)


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must not be before start date")


def sum_totals(
    attendance: Iterable[AttendanceSpan],
    breaks: Iterable[BreakSpan],
    sessions: Iterable[WorkSpan],
    *,
    now: datetime,
) -> PeriodTotals:
    """Sum spans into period totals; open spans count up to ``now``."""
    attendance = list(attendance)
    att = sum(time_accountant.span_minutes(s, now=now) for s in attendance)
    brk = sum(time_accountant.span_minutes(s, now=now) for s in breaks)

    order_work = internal_work = billable = 0.0
    for s in sessions:
        minutes = time_accountant.span_minutes(s, now=now)
        if s.is_order_bound:
            order_work += minutes
        else:
            internal_work += minutes
        if s.is_billable:
            billable += minutes

    return PeriodTotals(
        attendance_minutes=att,
        break_minutes=brk,
        order_work_minutes=order_work,
        internal_work_minutes=internal_work,
        billable_minutes=billable,
        attendance_days=len({s.started_at.date() for s in attendance}),
    )


def bucket_start(day: date, period: StatisticsPeriod) -> date:
    if period == StatisticsPeriod.DAY:
        return day
    if period == StatisticsPeriod.WEEK:
        return week_start(day)
    if period == StatisticsPeriod.MONTH:
        return day.replace(day=1)
    return date(day.year, 1, 1)


def bucket_label(start: date, period: StatisticsPeriod) -> str:
    if period == StatisticsPeriod.MONTH:
        return start.strftime("%Y-%m")
    if period == StatisticsPeriod.YEAR:
        return str(start.year)
    return start.isoformat()


def _compare_ranking(a: PerformanceMetrics, b: PerformanceMetrics) -> int:
    diff = b.attendance_efficiency - a.attendance_efficiency
    if abs(diff) >= RANKING_TIE_THRESHOLD:
        return 1 if diff > 0 else -1
    if a.work_productivity != b.work_productivity:
        return 1 if b.work_productivity > a.work_productivity else -1
    return 0


class PerformanceAggregator:
    """Read-only summaries over date ranges.

    Attendance, breaks and work sessions are read with three independent
    range queries and summed per employee. Nothing here writes to the store.
    """

    def __init__(
        self,
        store: SpanStore,
        employees: EmployeeRepository,
        *,
        calculator: Optional[PerformanceCalculator] = None,
    ):
        self._store = store
        self._employees = employees
        self._calculator = calculator or StandardPerformanceCalculator()

    def _spans_by_employee(self, start: date, end: date, employee_id: Optional[int] = None) -> Dict[int, _Spans]:
        grouped: Dict[int, _Spans] = defaultdict(_Spans)
        for s in self._store.attendance_between(start_date=start, end_date=end, employee_id=employee_id):
            grouped[s.employee_id].attendance.append(s)
        for s in self._store.breaks_between(start_date=start, end_date=end, employee_id=employee_id):
            grouped[s.employee_id].breaks.append(s)
        for s in self._store.work_between(start_date=start, end_date=end, employee_id=employee_id):
            grouped[s.employee_id].sessions.append(s)
        return grouped

    def _require_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFound()
        return employee

    def employee_overview(
        self,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
        *,
        now: datetime | None = None,
    ) -> List[EmployeeOverview]:
        _check_range(start, end)
        now = now or now_local()
        if employee_id is not None:
            employees: Sequence[Employee] = [self._require_employee(employee_id)]
        else:
            employees = self._employees.list_active()

        grouped = self._spans_by_employee(start, end, employee_id)
        out = []
        for employee in employees:
            spans = grouped.get(employee.employee_id) or _Spans()
            out.append(
                EmployeeOverview(
                    employee=employee,
                    totals=sum_totals(spans.attendance, spans.breaks, spans.sessions, now=now),
                )
            )
        return out

    def performance_metrics(
        self,
        employee_id: int,
        start: date,
        end: date,
        *,
        now: datetime | None = None,
    ) -> PerformanceMetrics:
        _check_range(start, end)
        now = now or now_local()
        spans = self._spans_by_employee(start, end, employee_id).get(employee_id) or _Spans()
        return self._calculator.evaluate(sum_totals(spans.attendance, spans.breaks, spans.sessions, now=now))

    def team_ranking(self, start: date, end: date, *, now: datetime | None = None) -> List[RankingEntry]:
        """Active employees ranked by attendance efficiency.

        Efficiencies closer than the tie threshold are ordered by work
        productivity instead.
        """
        _check_range(start, end)
        now = now or now_local()
        grouped = self._spans_by_employee(start, end)

        scored = []
        for employee in self._employees.list_active(role=Role.EMPLOYEE):
            spans = grouped.get(employee.employee_id) or _Spans()
            metrics = self._calculator.evaluate(
                sum_totals(spans.attendance, spans.breaks, spans.sessions, now=now)
            )
            scored.append((employee, metrics))

        scored.sort(key=cmp_to_key(lambda a, b: _compare_ranking(a[1], b[1])))
        logger.debug("Team ranking %s..%s over %d employees", start, end, len(scored))
        return [RankingEntry(rank=i, employee=e, metrics=m) for i, (e, m) in enumerate(scored, start=1)]

    def daily_summary(self, employee_id: int, day: date, *, now: datetime | None = None) -> DailySummary:
        now = now or now_local()
        spans = self._spans_by_employee(day, day, employee_id).get(employee_id) or _Spans()
        return DailySummary(
            employee_id=employee_id,
            day=day,
            metrics=self._calculator.evaluate(sum_totals(spans.attendance, spans.breaks, spans.sessions, now=now)),
            attendance=spans.attendance,
            breaks=spans.breaks,
            sessions=spans.sessions,
        )

    def statistics(
        self,
        period,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
        *,
        now: datetime | None = None,
    ) -> List[StatisticsBucket]:
        """Totals grouped into day/week/month/year buckets, newest first."""
        period = coerce_enum(StatisticsPeriod, period, "period")
        _check_range(start, end)
        now = now or now_local()

        buckets: Dict[date, _Spans] = defaultdict(_Spans)
        for s in self._store.attendance_between(start_date=start, end_date=end, employee_id=employee_id):
            buckets[bucket_start(s.started_at.date(), period)].attendance.append(s)
        for s in self._store.breaks_between(start_date=start, end_date=end, employee_id=employee_id):
            buckets[bucket_start(s.started_at.date(), period)].breaks.append(s)
        for s in self._store.work_between(start_date=start, end_date=end, employee_id=employee_id):
            buckets[bucket_start(s.started_at.date(), period)].sessions.append(s)

        newest = sorted(buckets, reverse=True)[:STATISTICS_BUCKET_LIMIT]
        return [
            StatisticsBucket(
                label=bucket_label(key, period),
                start=key,
                metrics=self._calculator.evaluate(
                    sum_totals(buckets[key].attendance, buckets[key].breaks, buckets[key].sessions, now=now)
                ),
            )
            for key in newest
        ]

    def kiosk_overview(
        self,
        employee_id: int,
        today: Optional[date] = None,
        *,
        now: datetime | None = None,
    ) -> KioskOverview:
        """Today, this week (from Sunday) and the caller's place in this week's team ranking."""
        now = now or now_local()
        today = today or now.date()
        week_from = week_start(today)

        ranking = self.team_ranking(week_from, today, now=now)
        rank = next((r.rank for r in ranking if r.employee.employee_id == employee_id), None)
        average = (
            time_accountant.round_percent(sum(r.metrics.attendance_efficiency for r in ranking) / len(ranking))
            if ranking
            else 0.0
        )
        return KioskOverview(
            today=self.performance_metrics(employee_id, today, today, now=now),
            week=self.performance_metrics(employee_id, week_from, today, now=now),
            team_rank=rank,
            team_size=len(ranking),
            team_average_efficiency=average,
        )
