from __future__ import annotations

import pytest

from src.attendance_core.attendance_core.common.validators import require_int, require_positive_int
from src.attendance_core.attendance_core.core.exceptions import ValidationError


@pytest.mark.parametrize("value, expected", [(21, 21), ("21", 21), (21.0, 21)])
def test_require_int_accepts_whole_numbers(value, expected):
    assert require_int(value, "working_days") == expected


@pytest.mark.parametrize("value", [3.7, float("inf"), float("-inf"), float("nan"), "abc", None, True, "3.5"])
def test_require_int_rejects_everything_else(value):
    with pytest.raises(ValidationError):
        require_int(value, "working_days")


def test_require_positive_int_rejects_zero():
    with pytest.raises(ValidationError, match="greater than 0"):
        require_positive_int(0, "working_days")
