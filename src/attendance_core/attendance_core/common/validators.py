from __future__ import annotations

import math
from typing import Any

from ..core.exceptions import ValidationError


def require_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        # Also rejects inf and nan.
        raise ValidationError(f"{field_name} must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field_name} must be an integer")


def require_positive_int(value: Any, field_name: str) -> int:
    number = require_int(value, field_name)
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return number


def require_float(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def optional_float(value: Any, field_name: str) -> float | None:
    if value is None or value == "":
        return None
    return require_float(value, field_name)


def require_month(year: Any, month: Any) -> tuple[int, int]:
    y = require_int(year, "year")
    m = require_int(month, "month")
    if not 1 <= m <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1970 <= y <= 9999:
        raise ValidationError("year is out of range")
    return y, m
