from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.timeclock.timeclock.breaks.model import StartBreakRequest
from src.timeclock.timeclock.core.enums import StatisticsPeriod
from src.timeclock.timeclock.core.exceptions import EmployeeNotFound, ValidationError
from src.timeclock.timeclock.work.model import StartSessionRequest

MONDAY = date(2026, 3, 2)


def _erik_day(presence, breaks, work, clock, offset=0):
    """480 attendance, 30 break, 200 order work, 120 internal work."""
    presence.clock_in(1, now=clock(offset))
    work.start_session(1, StartSessionRequest(order_id=2), now=clock(offset))
    work.end_session(1, now=clock(offset + 200))
    breaks.start_break(1, StartBreakRequest(category_id=1), now=clock(offset + 240))
    breaks.end_break(1, now=clock(offset + 270))
    work.start_session(1, StartSessionRequest(category_id=3), now=clock(offset + 300))
    work.end_session(1, now=clock(offset + 420))
    presence.clock_out(1, now=clock(offset + 480))


def _mia_day(presence, breaks, work, clock, break_minutes=60):
    """480 attendance, ``break_minutes`` break, 300 billable activity work."""
    presence.clock_in(2, now=clock(0))
    breaks.start_break(2, StartBreakRequest(category_id=2), now=clock(60))
    breaks.end_break(2, now=clock(60 + break_minutes))
    work.start_session(2, StartSessionRequest(category_id=4), now=clock(120))
    work.end_session(2, now=clock(420))
    presence.clock_out(2, now=clock(480))


def test_performance_metrics_for_one_day(performance, presence, breaks, work, clock):
    _erik_day(presence, breaks, work, clock)

    metrics = performance.performance_metrics(1, MONDAY, MONDAY, now=clock(600))

    assert metrics.totals.attendance_minutes == pytest.approx(480)
    assert metrics.totals.break_minutes == pytest.approx(30)
    assert metrics.totals.order_work_minutes == pytest.approx(200)
    assert metrics.totals.internal_work_minutes == pytest.approx(120)
    assert metrics.totals.billable_minutes == pytest.approx(200)
    assert metrics.attendance_efficiency == 93.75
    assert metrics.work_productivity == 44.44
    assert metrics.idle_minutes == pytest.approx(130)


def test_metrics_without_data_are_zero(performance, clock):
    metrics = performance.performance_metrics(2, MONDAY, MONDAY, now=clock(600))

    assert metrics.totals.attendance_minutes == 0
    assert metrics.attendance_efficiency == 0
    assert metrics.work_productivity == 0


def test_open_spans_run_to_now_without_being_written(performance, presence, store, clock):
    span = presence.clock_in(2, now=clock(0))

    metrics = performance.performance_metrics(2, MONDAY, MONDAY, now=clock(120))

    assert metrics.totals.attendance_minutes == pytest.approx(120)
    assert store.find_attendance(span.attendance_id).total_hours is None
    assert store.find_attendance(span.attendance_id).is_open


def test_reversed_range_is_rejected(performance):
    with pytest.raises(ValidationError):
        performance.performance_metrics(1, MONDAY, MONDAY - timedelta(days=1))


def test_employee_overview_splits_work(performance, presence, breaks, work, clock):
    _erik_day(presence, breaks, work, clock)
    _mia_day(presence, breaks, work, clock)

    rows = performance.employee_overview(MONDAY, MONDAY, now=clock(600))

    assert [r.employee.employee_number for r in rows] == ["E001", "D001", "E002"]
    erik, dispatcher, mia = rows
    assert erik.totals.order_work_minutes == pytest.approx(200)
    assert erik.totals.internal_work_minutes == pytest.approx(120)
    assert erik.idle_minutes == pytest.approx(130)
    assert dispatcher.totals.attendance_minutes == 0
    assert mia.totals.internal_work_minutes == pytest.approx(300)
    assert mia.totals.internal_minutes == 0


def test_employee_overview_for_unknown_employee(performance):
    with pytest.raises(EmployeeNotFound):
        performance.employee_overview(MONDAY, MONDAY, employee_id=42)


def test_team_ranking_orders_by_efficiency(performance, presence, breaks, work, clock):
    _erik_day(presence, breaks, work, clock)
    _mia_day(presence, breaks, work, clock)

    ranking = performance.team_ranking(MONDAY, MONDAY, now=clock(600))

    assert [(r.rank, r.employee.employee_id) for r in ranking] == [(1, 1), (2, 2)]
    assert ranking[0].metrics.attendance_efficiency == 93.75
    assert ranking[1].metrics.attendance_efficiency == 87.5


def test_efficiency_within_one_point_ranks_by_productivity(performance, presence, breaks, work, clock):
    _erik_day(presence, breaks, work, clock)
    _mia_day(presence, breaks, work, clock, break_minutes=33)

    ranking = performance.team_ranking(MONDAY, MONDAY, now=clock(600))

    assert ranking[1].metrics.attendance_efficiency < ranking[0].metrics.attendance_efficiency + 1
    assert [r.employee.employee_id for r in ranking] == [2, 1]


def test_team_ranking_only_counts_active_employees(performance, clock):
    ranking = performance.team_ranking(MONDAY, MONDAY, now=clock(0))

    assert [r.employee.employee_id for r in ranking] == [1, 2]


def test_daily_summary_lists_the_days_spans(performance, presence, breaks, work, clock):
    _erik_day(presence, breaks, work, clock)
    _erik_day(presence, breaks, work, clock, offset=24 * 60)

    summary = performance.daily_summary(1, MONDAY, now=clock(3000))

    assert len(summary.attendance) == 1
    assert len(summary.breaks) == 1
    assert len(summary.sessions) == 2
    assert summary.metrics.totals.attendance_days == 1


@pytest.mark.parametrize(
    "period, labels",
    [
        ("day", ["2026-03-03", "2026-03-02"]),
        (StatisticsPeriod.WEEK, ["2026-03-01"]),
        ("month", ["2026-03"]),
        ("year", ["2026"]),
    ],
)
def test_statistics_buckets_newest_first(performance, presence, breaks, work, clock, period, labels):
    _erik_day(presence, breaks, work, clock)
    _erik_day(presence, breaks, work, clock, offset=24 * 60)

    buckets = performance.statistics(period, MONDAY, MONDAY + timedelta(days=6), employee_id=1, now=clock(3000))

    assert [b.label for b in buckets] == labels
    assert sum(b.metrics.totals.attendance_minutes for b in buckets) == pytest.approx(960)


def test_statistics_keep_thirty_newest_buckets(performance, presence, clock):
    for day in range(35):
        presence.clock_in(2, now=clock(day * 24 * 60))
        presence.clock_out(2, now=clock(day * 24 * 60 + 60))

    buckets = performance.statistics("day", MONDAY, MONDAY + timedelta(days=40), now=clock(60 * 24 * 60))

    assert len(buckets) == 30
    assert buckets[0].start == MONDAY + timedelta(days=34)
    assert buckets[-1].start == MONDAY + timedelta(days=5)


def test_statistics_rejects_unknown_period(performance):
    with pytest.raises(ValidationError):
        performance.statistics("fortnight", MONDAY, MONDAY)


def test_kiosk_overview(performance, presence, breaks, work, clock):
    _erik_day(presence, breaks, work, clock)
    _mia_day(presence, breaks, work, clock)

    overview = performance.kiosk_overview(2, MONDAY, now=clock(600))

    assert overview.today.attendance_efficiency == 87.5
    assert overview.week.attendance_efficiency == 87.5
    assert overview.team_rank == 2
    assert overview.team_size == 2
    assert overview.team_average_efficiency == pytest.approx(90.625, abs=0.01)


def test_kiosk_overview_for_dispatcher_has_no_rank(performance, clock):
    overview = performance.kiosk_overview(3, MONDAY, now=clock(0))

    assert overview.team_rank is None
    assert overview.team_size == 2
    assert overview.team_average_efficiency == 0
