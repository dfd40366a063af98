from __future__ import annotations

from flask import Flask

from ..common.web import (
    current_employee_id,
    current_role,
    json_body,
    kiosk_employee,
    kiosk_method,
    login_required,
    ok,
    optional_timestamp,
    supervisor_required,
    target_employee_id,
)
from ..container import Container
from ..core.enums import CaptureMethod
from ..employees.service import require_role
from .model import AttendanceCorrection, ClockInRequest, ClockOutRequest


def register(app: Flask, container: Container) -> None:
    presence = container.presence_tracker

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="clock_in")
    @login_required
    def clock_in():
        data = json_body()
        span = presence.clock_in(
            current_employee_id(),
            ClockInRequest(method=CaptureMethod.MANUAL, location=data.get("location"), note=data.get("note")),
        )
        return ok(span, status=201)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="clock_out")
    @login_required
    def clock_out():
        data = json_body()
        force = bool(data.get("force"))
        if force:
            require_role(current_role())
        span = presence.clock_out(
            target_employee_id(data.get("employee_id")),
            ClockOutRequest(
                method=CaptureMethod.MANUAL,
                location=data.get("location"),
                note=data.get("note"),
                force=force,
            ),
        )
        return ok(span)

    @app.route("/api/attendance/current", methods=["GET"], endpoint="attendance_current")
    @login_required
    def attendance_current():
        employee_id = current_employee_id()
        return ok(presence.active_presence(employee_id), state=presence.state(employee_id))

    @app.route("/api/attendance/active", methods=["GET"], endpoint="attendance_active")
    @supervisor_required
    def attendance_active():
        return ok(presence.all_active_presence())

    @app.route("/api/attendance/live", methods=["GET"], endpoint="attendance_live")
    @supervisor_required
    def attendance_live():
        """Live board: every employee with at least one open span."""
        return ok(list(presence.all_states().values()))

    @app.route("/api/attendance/anomalies", methods=["GET"], endpoint="attendance_anomalies")
    @supervisor_required
    def attendance_anomalies():
        return ok(presence.anomalies())

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="attendance_correct")
    @supervisor_required
    def attendance_correct(attendance_id: int):
        data = json_body()
        span = presence.correct_attendance(
            attendance_id,
            AttendanceCorrection(
                started_at=optional_timestamp(data.get("started_at")),
                ended_at=optional_timestamp(data.get("ended_at")),
                clock_in_note=data.get("clock_in_note"),
                clock_out_note=data.get("clock_out_note"),
            ),
        )
        return ok(span)

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="attendance_delete")
    @supervisor_required
    def attendance_delete(attendance_id: int):
        presence.delete_attendance(attendance_id)
        return ok()

    # -- kiosk ------------------------------------------------------------

    @app.route("/api/kiosk/clock-in", methods=["POST"], endpoint="kiosk_clock_in")
    def kiosk_clock_in():
        data = json_body()
        employee = kiosk_employee(container.auth_service, data)
        span = presence.clock_in(
            employee.employee_id,
            ClockInRequest(method=kiosk_method(data), location=data.get("location"), note=data.get("note")),
        )
        return ok(span, status=201, employee=employee)

    @app.route("/api/kiosk/clock-out", methods=["POST"], endpoint="kiosk_clock_out")
    def kiosk_clock_out():
        data = json_body()
        employee = kiosk_employee(container.auth_service, data)
        span = presence.clock_out(
            employee.employee_id,
            ClockOutRequest(method=kiosk_method(data), location=data.get("location"), note=data.get("note")),
        )
        return ok(span, employee=employee)
