from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value).replace(microsecond=0)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid timestamp {value!r}")


def now_local() -> datetime:
    """Current local time truncated to whole seconds.

    Spans are stored at second granularity, so durations computed from the
    returned value match what a later read from the store gives back.
    Wrapped so tests can patch it.
    """
    return datetime.now().replace(microsecond=0)


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def resolve_period(period: str, today: date) -> Tuple[date, date]:
    """Map ``today``/``week``/``month`` onto an inclusive date range."""
    if period == "today":
        return today, today
    if period == "week":
        return week_start(today), today
    if period == "month":
        return today.replace(day=1), today
    raise ValidationError(f"Unknown period {period!r}")


def resolve_range(
    *,
    start: Optional[str],
    end: Optional[str],
    period: str,
    today: date,
) -> Tuple[date, date]:
    """Explicit start/end win over a named period."""
    if start and end:
        start_date, end_date = parse_iso_date(start), parse_iso_date(end)
    else:
        start_date, end_date = resolve_period(period, today)
    if end_date < start_date:
        raise ValidationError("End date must not be before start date")
    return start_date, end_date
