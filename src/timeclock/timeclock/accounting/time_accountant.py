"""Pure time-accounting rules.

Nothing here touches the store or the clock: open spans are measured up to
the ``now`` the caller passes in, so the same inputs always give the same
numbers.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from ..core.exceptions import ValidationError


def duration_seconds(started_at: datetime, ended_at: Optional[datetime], *, now: Optional[datetime] = None) -> float:
    end = ended_at if ended_at is not None else now
    if end is None:
        raise ValidationError("An open span needs a reference time")
    return max((end - started_at).total_seconds(), 0.0)


def duration_minutes(started_at: datetime, ended_at: Optional[datetime], *, now: Optional[datetime] = None) -> float:
    return duration_seconds(started_at, ended_at, now=now) / 60


def duration_hours(started_at: datetime, ended_at: Optional[datetime], *, now: Optional[datetime] = None) -> float:
    return duration_seconds(started_at, ended_at, now=now) / 3600


def cost(minutes: float, hourly_rate: Optional[float]) -> Optional[float]:
    if hourly_rate is None:
        return None
    return (minutes / 60) * hourly_rate


def span_minutes(span, *, now: datetime) -> float:
    """Minutes of any span; closed spans use their fixed value when present."""
    if span.ended_at is not None:
        fixed = getattr(span, "duration_minutes", None)
        if fixed is not None:
            return float(fixed)
        total_hours = getattr(span, "total_hours", None)
        if total_hours is not None:
            return float(total_hours) * 60
    return duration_minutes(span.started_at, span.ended_at, now=now)


def round_percent(value: float) -> float:
    return round(value, 2)


def attendance_efficiency(attendance_minutes: float, break_minutes: float) -> float:
    """Stage 1: share of present time not spent on breaks."""
    if attendance_minutes <= 0:
        return 0.0
    return round_percent((attendance_minutes - break_minutes) / attendance_minutes * 100)


def work_productivity(billable_minutes: float, attendance_minutes: float, break_minutes: float) -> float:
    """Stage 2: billable share of the derived work time (attendance minus breaks)."""
    calculated = attendance_minutes - break_minutes
    if calculated <= 0:
        return 0.0
    return round_percent(billable_minutes / calculated * 100)


def format_minutes(minutes: Optional[float]) -> str:
    """HH:MM, rounded to the nearest whole minute."""
    total = int(math.floor(max(minutes or 0, 0) + 0.5))
    return f"{total // 60:02d}:{total % 60:02d}"
