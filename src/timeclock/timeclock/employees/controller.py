from __future__ import annotations

import logging

from flask import Flask, session

from ..common.web import json_body, kiosk_employee, login_required, login_session, ok
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        employee = container.auth_service.authenticate(str(data.get("email") or ""), str(data.get("password") or ""))
        login_session(employee)
        logger.info("Web login employee=%s role=%s", employee.employee_id, employee.role.value)
        return ok(employee)

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok()

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        employee_id = int(session["employee_id"])
        return ok(
            {
                "employee_id": employee_id,
                "employee_number": session.get("employee_number"),
                "full_name": session.get("name"),
                "role": session.get("role"),
            },
            state=container.presence_tracker.state(employee_id),
        )

    @app.route("/api/kiosk/identify", methods=["POST"], endpoint="kiosk_identify")
    def kiosk_identify():
        """Who is at the terminal and what they are doing right now."""
        employee = kiosk_employee(container.auth_service, json_body())
        return ok(employee, state=container.presence_tracker.state(employee.employee_id))
