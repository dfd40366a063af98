from __future__ import annotations

from enum import Enum
from typing import Optional, Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    """Strip text input; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def optional_positive_int(value, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def optional_non_negative_float(value, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return number


def coerce_enum(enum_cls: Type[E], value, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def merge_notes(existing: Optional[str], addition: Optional[str]) -> Optional[str]:
    """Append a closing note to an opening note without losing either."""
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}\n{addition}"
