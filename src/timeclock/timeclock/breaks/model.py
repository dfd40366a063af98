from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.validators import optional_positive_int, optional_text
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class StartBreakRequest:
    category_id: int
    note: Optional[str] = None

    def __post_init__(self):
        category_id = optional_positive_int(self.category_id, "category_id")
        if category_id is None:
            raise ValidationError("category_id is required")
        object.__setattr__(self, "category_id", category_id)
        object.__setattr__(self, "note", optional_text(self.note))


@dataclass(frozen=True)
class EndBreakRequest:
    note: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "note", optional_text(self.note))


@dataclass(frozen=True)
class BreakCorrection:
    """Administrative edit. ``None`` leaves a field unchanged."""

    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    category_id: Optional[int] = None
    note: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "category_id", optional_positive_int(self.category_id, "category_id"))
