from __future__ import annotations

from flask import Flask

from ..common.web import (
    current_employee_id,
    json_body,
    kiosk_employee,
    login_required,
    ok,
    optional_timestamp,
    supervisor_required,
)
from ..container import Container
from .model import BreakCorrection, EndBreakRequest, StartBreakRequest


def register(app: Flask, container: Container) -> None:
    breaks = container.break_tracker

    @app.route("/api/breaks/start", methods=["POST"], endpoint="break_start")
    @login_required
    def break_start():
        data = json_body()
        span = breaks.start_break(
            current_employee_id(),
            StartBreakRequest(category_id=data.get("category_id"), note=data.get("note")),
        )
        return ok(span, status=201)

    @app.route("/api/breaks/end", methods=["POST"], endpoint="break_end")
    @login_required
    def break_end():
        data = json_body()
        return ok(breaks.end_break(current_employee_id(), EndBreakRequest(note=data.get("note"))))

    @app.route("/api/breaks/current", methods=["GET"], endpoint="break_current")
    @login_required
    def break_current():
        return ok(breaks.active_break(current_employee_id()))

    @app.route("/api/breaks/active", methods=["GET"], endpoint="break_active")
    @supervisor_required
    def break_active():
        return ok(breaks.all_active_breaks())

    @app.route("/api/breaks/<int:break_id>", methods=["PUT"], endpoint="break_correct")
    @supervisor_required
    def break_correct(break_id: int):
        data = json_body()
        span = breaks.correct_break(
            break_id,
            BreakCorrection(
                started_at=optional_timestamp(data.get("started_at")),
                ended_at=optional_timestamp(data.get("ended_at")),
                category_id=data.get("category_id"),
                note=data.get("note"),
            ),
        )
        return ok(span)

    @app.route("/api/breaks/<int:break_id>", methods=["DELETE"], endpoint="break_delete")
    @supervisor_required
    def break_delete(break_id: int):
        breaks.delete_break(break_id)
        return ok()

    # -- kiosk ------------------------------------------------------------

    @app.route("/api/kiosk/breaks/start", methods=["POST"], endpoint="kiosk_break_start")
    def kiosk_break_start():
        data = json_body()
        employee = kiosk_employee(container.auth_service, data)
        span = breaks.start_break(
            employee.employee_id,
            StartBreakRequest(category_id=data.get("category_id"), note=data.get("note")),
        )
        return ok(span, status=201, employee=employee)

    @app.route("/api/kiosk/breaks/end", methods=["POST"], endpoint="kiosk_break_end")
    def kiosk_break_end():
        data = json_body()
        employee = kiosk_employee(container.auth_service, data)
        return ok(breaks.end_break(employee.employee_id, EndBreakRequest(note=data.get("note"))), employee=employee)
