from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.validators import coerce_enum, optional_text
from ..core.enums import CaptureMethod


@dataclass(frozen=True)
class ClockInRequest:
    method: CaptureMethod = CaptureMethod.MANUAL
    location: Optional[str] = None
    note: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "method", coerce_enum(CaptureMethod, self.method, "method"))
        object.__setattr__(self, "location", optional_text(self.location))
        object.__setattr__(self, "note", optional_text(self.note))


@dataclass(frozen=True)
class ClockOutRequest:
    """``force``: administrative clock-out that skips the break auto-end."""

    method: CaptureMethod = CaptureMethod.MANUAL
    location: Optional[str] = None
    note: Optional[str] = None
    force: bool = False

    def __post_init__(self):
        object.__setattr__(self, "method", coerce_enum(CaptureMethod, self.method, "method"))
        object.__setattr__(self, "location", optional_text(self.location))
        object.__setattr__(self, "note", optional_text(self.note))
        object.__setattr__(self, "force", bool(self.force))


@dataclass(frozen=True)
class AttendanceCorrection:
    """Administrative edit. ``None`` leaves a field unchanged."""

    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    clock_in_note: Optional[str] = None
    clock_out_note: Optional[str] = None
