from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Employee roles used for authorization."""

    EMPLOYEE = "employee"
    DISPATCHER = "dispatcher"
    ADMIN = "admin"


class CaptureMethod(str, Enum):
    """Which entry point recorded a transition."""

    MANUAL = "manual"
    KIOSK = "kiosk"
    SCAN = "scan"


class EmployeeState(str, Enum):
    """What an employee is doing right now, derived from open spans."""

    ABSENT = "ABSENT"
    PRESENT_IDLE = "PRESENT_IDLE"
    PRESENT_BREAK = "PRESENT_BREAK"
    PRESENT_WORKING = "PRESENT_WORKING"


class CategoryKind(str, Enum):
    WORK = "work"
    BREAK = "break"
    OTHER = "other"


class OrderStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SpanKind(str, Enum):
    ATTENDANCE = "attendance"
    BREAK = "break"
    WORK = "work"


class StatisticsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
