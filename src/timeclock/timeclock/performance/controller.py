from __future__ import annotations

from flask import Flask, request

from ..accounting.calculator.base import PerformanceMetrics, PeriodTotals
from ..accounting.time_accountant import format_minutes
from ..common.datetime_utils import now_local, parse_iso_date, resolve_range
from ..common.web import (
    current_employee_id,
    current_role,
    json_body,
    kiosk_employee,
    login_required,
    ok,
    supervisor_required,
    target_employee_id,
)
from ..container import Container
from ..employees.service import SUPERVISOR_ROLES


def _date_range(default_period: str = "week"):
    return resolve_range(
        start=request.args.get("start"),
        end=request.args.get("end"),
        period=request.args.get("period", default_period),
        today=now_local().date(),
    )


def _formatted(totals: PeriodTotals) -> dict:
    return {
        "attendance": format_minutes(totals.attendance_minutes),
        "break": format_minutes(totals.break_minutes),
        "order_work": format_minutes(totals.order_work_minutes),
        "internal_work": format_minutes(totals.internal_work_minutes),
        "total_work": format_minutes(totals.work_minutes),
    }


def _metrics_view(metrics: PerformanceMetrics) -> dict:
    return {
        "attendance_efficiency": metrics.attendance_efficiency,
        "work_productivity": metrics.work_productivity,
        "calculated_work_minutes": metrics.calculated_work_minutes,
        "idle_minutes": metrics.idle_minutes,
        "avg_attendance_per_day": metrics.avg_attendance_per_day,
        "totals": metrics.totals,
        "formatted": dict(_formatted(metrics.totals), idle=format_minutes(metrics.idle_minutes)),
    }


def register(app: Flask, container: Container) -> None:
    performance = container.performance_aggregator

    @app.route("/api/performance/individual", methods=["GET"], endpoint="performance_individual")
    @login_required
    def performance_individual():
        employee_id = target_employee_id(request.args.get("employee_id"))
        start, end = _date_range()
        metrics = performance.performance_metrics(employee_id, start, end)
        return ok(_metrics_view(metrics), start_date=start, end_date=end)

    @app.route("/api/performance/team-ranking", methods=["GET"], endpoint="performance_team_ranking")
    @supervisor_required
    def performance_team_ranking():
        start, end = _date_range()
        ranking = [
            {
                "rank": entry.rank,
                "employee": entry.employee,
                "metrics": _metrics_view(entry.metrics),
            }
            for entry in performance.team_ranking(start, end)
        ]
        return ok(ranking, start_date=start, end_date=end)

    @app.route("/api/statistics/overview", methods=["GET"], endpoint="statistics_overview")
    @supervisor_required
    def statistics_overview():
        start, end = _date_range(default_period="today")
        employee_id = request.args.get("employee_id", type=int)
        rows = [
            {
                "employee": row.employee,
                "totals": row.totals,
                "idle_minutes": row.idle_minutes,
                "formatted": dict(_formatted(row.totals), idle=format_minutes(row.idle_minutes)),
            }
            for row in performance.employee_overview(start, end, employee_id)
        ]
        return ok(rows, start_date=start, end_date=end)

    @app.route("/api/statistics/periods", methods=["GET"], endpoint="statistics_periods")
    @login_required
    def statistics_periods():
        requested = request.args.get("employee_id")
        if requested:
            employee_id = target_employee_id(requested)
        elif current_role() in SUPERVISOR_ROLES:
            employee_id = None
        else:
            employee_id = current_employee_id()
        start, end = _date_range(default_period="month")
        buckets = [
            {"label": b.label, "start": b.start, "metrics": _metrics_view(b.metrics)}
            for b in performance.statistics(request.args.get("group", "day"), start, end, employee_id)
        ]
        return ok(buckets, start_date=start, end_date=end)

    @app.route("/api/reports/daily", methods=["GET"], endpoint="report_daily")
    @login_required
    def report_daily():
        employee_id = target_employee_id(request.args.get("employee_id"))
        day_s = request.args.get("date")
        day = parse_iso_date(day_s) if day_s else now_local().date()
        summary = performance.daily_summary(employee_id, day)
        return ok(
            {
                "employee_id": summary.employee_id,
                "day": summary.day,
                "metrics": _metrics_view(summary.metrics),
                "attendance": summary.attendance,
                "breaks": summary.breaks,
                "sessions": summary.sessions,
            }
        )

    @app.route("/api/kiosk/performance", methods=["POST"], endpoint="kiosk_performance")
    def kiosk_performance():
        employee = kiosk_employee(container.auth_service, json_body())
        overview = performance.kiosk_overview(employee.employee_id)
        return ok(
            {
                "today": _metrics_view(overview.today),
                "week": _metrics_view(overview.week),
                "team_rank": overview.team_rank,
                "team_size": overview.team_size,
                "team_average_efficiency": overview.team_average_efficiency,
            },
            employee=employee,
        )
