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
from .model import EndSessionRequest, SessionCorrection, StartSessionRequest


def _start_request(data: dict, method: CaptureMethod) -> StartSessionRequest:
    return StartSessionRequest(
        order_id=data.get("order_id"),
        category_id=data.get("category_id"),
        task_description=data.get("task_description"),
        hourly_rate=data.get("hourly_rate"),
        note=data.get("note"),
        method=method,
    )


def register(app: Flask, container: Container) -> None:
    work = container.work_tracker

    @app.route("/api/work-sessions/start", methods=["POST"], endpoint="session_start")
    @login_required
    def session_start():
        span = work.start_session(current_employee_id(), _start_request(json_body(), CaptureMethod.MANUAL))
        return ok(span, status=201)

    @app.route("/api/work-sessions/end", methods=["POST"], endpoint="session_end")
    @login_required
    def session_end():
        data = json_body()
        force = bool(data.get("force"))
        if force:
            require_role(current_role())
        span = work.end_session(
            target_employee_id(data.get("employee_id")),
            EndSessionRequest(note=data.get("note"), force=force),
        )
        return ok(span)

    @app.route("/api/work-sessions/current", methods=["GET"], endpoint="session_current")
    @login_required
    def session_current():
        return ok(work.active_session(current_employee_id()))

    @app.route("/api/work-sessions/active", methods=["GET"], endpoint="session_active")
    @supervisor_required
    def session_active():
        return ok(work.all_active_sessions())

    @app.route("/api/work-sessions/<int:session_id>", methods=["PUT"], endpoint="session_correct")
    @supervisor_required
    def session_correct(session_id: int):
        data = json_body()
        span = work.correct_session(
            session_id,
            SessionCorrection(
                started_at=optional_timestamp(data.get("started_at")),
                ended_at=optional_timestamp(data.get("ended_at")),
                category_id=data.get("category_id"),
                hourly_rate=data.get("hourly_rate"),
                task_description=data.get("task_description"),
                note=data.get("note"),
            ),
        )
        return ok(span)

    @app.route("/api/work-sessions/<int:session_id>", methods=["DELETE"], endpoint="session_delete")
    @supervisor_required
    def session_delete(session_id: int):
        work.delete_session(session_id)
        return ok()

    # -- kiosk ------------------------------------------------------------

    @app.route("/api/kiosk/work-sessions/start", methods=["POST"], endpoint="kiosk_session_start")
    def kiosk_session_start():
        data = json_body()
        employee = kiosk_employee(container.auth_service, data)
        span = work.start_session(employee.employee_id, _start_request(data, kiosk_method(data)))
        return ok(span, status=201, employee=employee)

    @app.route("/api/kiosk/work-sessions/end", methods=["POST"], endpoint="kiosk_session_end")
    def kiosk_session_end():
        data = json_body()
        employee = kiosk_employee(container.auth_service, data)
        span = work.end_session(employee.employee_id, EndSessionRequest(note=data.get("note")))
        return ok(span, employee=employee)
