"""Helpers shared by the JSON controllers.

Web callers are identified by the Flask session, kiosk callers by employee
number + PIN in the request body. Business errors become
``{"success": false, "code", "message"}`` with the status carried by the
exception class; anything else is logged and answered with an opaque 500.
"""

from __future__ import annotations

import logging
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import CaptureMethod, Role
from ..core.exceptions import AuthenticationError, DomainError, ValidationError
from ..employees.service import SUPERVISOR_ROLES, SessionEmployee, require_role
from .datetime_utils import parse_iso_datetime
from .validators import coerce_enum

logger = logging.getLogger(__name__)

_HIDDEN_FIELDS = frozenset({"pin_hash", "password_hash"})
_DERIVED_PROPERTIES = (
    "is_open",
    "is_order_bound",
    "is_consistent",
    "full_name",
    "work_minutes",
    "internal_minutes",
    "idle_minutes",
)


def to_json(value: Any) -> Any:
    """Dataclasses, enums and timestamps to plain JSON values."""
    if is_dataclass(value) and not isinstance(value, type):
        out = {f.name: to_json(getattr(value, f.name)) for f in fields(value) if f.name not in _HIDDEN_FIELDS}
        for name in _DERIVED_PROPERTIES:
            if name not in out and isinstance(getattr(type(value), name, None), property):
                out[name] = to_json(getattr(value, name))
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    return value


def ok(data: Any = None, status: int = 200, **extra):
    body = {"success": True, "data": to_json(data)}
    body.update({k: to_json(v) for k, v in extra.items()})
    return jsonify(body), status


def error_body(exc: DomainError):
    return jsonify({"success": False, "code": exc.code, "message": str(exc)}), exc.status_code


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def optional_timestamp(value: Optional[str]) -> Optional[datetime]:
    return parse_iso_datetime(value) if value else None


def install_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        logger.info("Request refused: %s (%s)", exc.code, exc)
        return error_body(exc)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            code = exc.name.lower().replace(" ", "_")
            return jsonify({"success": False, "code": code, "message": exc.description}), exc.code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "code": "internal_error", "message": "Internal server error"}), 500


# -- web session ----------------------------------------------------------


def login_session(employee: SessionEmployee) -> None:
    session.clear()
    session["employee_id"] = employee.employee_id
    session["employee_number"] = employee.employee_number
    session["name"] = employee.full_name
    session["role"] = employee.role.value


def current_employee_id() -> int:
    if "employee_id" not in session:
        raise AuthenticationError("Please log in first")
    return int(session["employee_id"])


def current_role() -> Role:
    current_employee_id()
    return Role(session["role"])


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_employee_id()
        return view(*args, **kwargs)

    return wrapper


def supervisor_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        require_role(current_role(), SUPERVISOR_ROLES)
        return view(*args, **kwargs)

    return wrapper


def target_employee_id(requested) -> int:
    """The caller's own id, or another employee's when a supervisor asks for it."""
    own = current_employee_id()
    if requested in (None, ""):
        return own
    try:
        target = int(requested)
    except (TypeError, ValueError):
        raise ValidationError("employee_id must be an integer")
    if target != own:
        require_role(current_role(), SUPERVISOR_ROLES)
    return target


# -- kiosk ----------------------------------------------------------------


def kiosk_employee(auth_service, data: dict) -> SessionEmployee:
    """Resolve a kiosk request body's employee number + PIN.

    A badge scan (``method == "scan"``) without a PIN identifies by number only.
    """
    employee_number = str(data.get("employee_number") or "")
    pin = str(data.get("pin") or "")
    if not pin and data.get("method") == CaptureMethod.SCAN.value:
        return auth_service.resolve_employee_number(employee_number)
    return auth_service.authenticate_kiosk(employee_number, pin)


def kiosk_method(data: dict) -> CaptureMethod:
    """Kiosk terminals record ``kiosk`` unless the badge scanner says ``scan``."""
    method = coerce_enum(CaptureMethod, data.get("method") or CaptureMethod.KIOSK, "method")
    if method == CaptureMethod.MANUAL:
        raise ValidationError("Kiosk requests cannot use the manual capture method")
    return method
