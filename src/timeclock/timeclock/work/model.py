from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.validators import coerce_enum, optional_non_negative_float, optional_positive_int, optional_text
from ..core.enums import CaptureMethod
from ..core.exceptions import ConflictingTarget


@dataclass(frozen=True)
class StartSessionRequest:
    """Exactly one of ``order_id`` / ``category_id`` selects what is worked on.

    ``hourly_rate`` overrides the employee's default rate for this session.
    """

    order_id: Optional[int] = None
    category_id: Optional[int] = None
    task_description: Optional[str] = None
    hourly_rate: Optional[float] = None
    note: Optional[str] = None
    method: CaptureMethod = CaptureMethod.MANUAL

    def __post_init__(self):
        order_id = optional_positive_int(self.order_id, "order_id")
        category_id = optional_positive_int(self.category_id, "category_id")
        if (order_id is None) == (category_id is None):
            raise ConflictingTarget()
        object.__setattr__(self, "order_id", order_id)
        object.__setattr__(self, "category_id", category_id)
        object.__setattr__(self, "task_description", optional_text(self.task_description))
        object.__setattr__(self, "hourly_rate", optional_non_negative_float(self.hourly_rate, "hourly_rate"))
        object.__setattr__(self, "note", optional_text(self.note))
        object.__setattr__(self, "method", coerce_enum(CaptureMethod, self.method, "method"))

    @property
    def is_order_bound(self) -> bool:
        return self.order_id is not None


@dataclass(frozen=True)
class EndSessionRequest:
    """``force``: administrative close, allowed for a session left open after clock-out."""

    note: Optional[str] = None
    force: bool = False

    def __post_init__(self):
        object.__setattr__(self, "note", optional_text(self.note))
        object.__setattr__(self, "force", bool(self.force))


@dataclass(frozen=True)
class SessionCorrection:
    """Administrative edit. ``None`` leaves a field unchanged.

    ``category_id`` moves an activity session to another work category; order
    sessions keep their order.
    """

    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    category_id: Optional[int] = None
    hourly_rate: Optional[float] = None
    task_description: Optional[str] = None
    note: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "category_id", optional_positive_int(self.category_id, "category_id"))
        object.__setattr__(self, "hourly_rate", optional_non_negative_float(self.hourly_rate, "hourly_rate"))
