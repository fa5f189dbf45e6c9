from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Sequence

from .model import BiometricPunch


class BiometricPunchRepository(Protocol):
    def replace_punches(self, punches: Sequence[BiometricPunch]) -> int:
        """Drop every stored punch for the (employee_id, work_date) keys present, then store these.

        Returns the number of punches written.
        """
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[BiometricPunch]:
        raise NotImplementedError


class DeviceMappingRepository(Protocol):
    def load_mappings(self) -> Mapping[tuple[str, str], int]:
        """(device_id, device_user_id) -> employee_id."""
        raise NotImplementedError
