from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import CaptureMethod, CategoryKind, OrderStatus


@dataclass(frozen=True)
class AttendanceSpan:
    """Domain entity: presence interval from clock-in to clock-out."""

    attendance_id: int
    employee_id: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    clock_in_method: CaptureMethod = CaptureMethod.MANUAL
    clock_out_method: Optional[CaptureMethod] = None
    clock_in_location: Optional[str] = None
    clock_out_location: Optional[str] = None
    clock_in_note: Optional[str] = None
    clock_out_note: Optional[str] = None
    total_hours: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


@dataclass(frozen=True)
class BreakSpan:
    """Domain entity: break interval nested in an attendance interval."""

    break_id: int
    employee_id: int
    category_id: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    attendance_id: Optional[int] = None
    duration_minutes: Optional[float] = None
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


@dataclass(frozen=True)
class WorkSpan:
    """Domain entity: work session bound to an order or an activity category.

    Exactly one of ``order_id`` / ``category_id`` is set.
    """

    session_id: int
    employee_id: int
    started_at: datetime
    order_id: Optional[int] = None
    category_id: Optional[int] = None
    task_description: Optional[str] = None
    ended_at: Optional[datetime] = None
    duration_minutes: Optional[float] = None
    hourly_rate: Optional[float] = None
    is_billable: bool = False
    cost: Optional[float] = None
    note: Optional[str] = None
    method: CaptureMethod = CaptureMethod.MANUAL

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def is_order_bound(self) -> bool:
        return self.order_id is not None


@dataclass(frozen=True)
class Category:
    """Reference data: break/activity category (read-only for the trackers)."""

    category_id: int
    name: str
    kind: CategoryKind
    is_active: bool = True
    is_productive: bool = True
    is_billable: bool = False
    max_duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class WorkOrder:
    """Reference data: customer order. Trackers only ever move created -> in_progress."""

    order_id: int
    order_number: str
    status: OrderStatus
    description: Optional[str] = None

    @property
    def accepts_work(self) -> bool:
        return self.status in (OrderStatus.CREATED, OrderStatus.IN_PROGRESS)
