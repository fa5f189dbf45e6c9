from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import PayComponentKind


@dataclass(frozen=True)
class PayComponent:
    """A fixed allowance or deduction applied to one pay period."""

    name: str
    amount: float
    kind: PayComponentKind


@dataclass(frozen=True)
class Employee:
    """Roster entry, read-only input owned by the identity service."""

    employee_id: int
    full_name: str
    role: str
    department: Optional[str]
    base_salary: Optional[float]
    is_active: bool = True
    currency: str = "USD"
    pay_components: tuple[PayComponent, ...] = field(default_factory=tuple)

    @property
    def allowances(self) -> tuple[PayComponent, ...]:
        return tuple(c for c in self.pay_components if c.kind == PayComponentKind.ALLOWANCE)

    @property
    def deductions(self) -> tuple[PayComponent, ...]:
        return tuple(c for c in self.pay_components if c.kind == PayComponentKind.DEDUCTION)
