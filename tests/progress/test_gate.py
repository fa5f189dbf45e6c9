from __future__ import annotations

from datetime import date

from src.attendance_core.attendance_core.progress.gate import ProgressGate
from tests.fakes import InMemoryProgress


def test_gate_unmet_without_entries():
    progress = InMemoryProgress()
    assert ProgressGate(progress).check(1, date(2025, 3, 3)) is False


def test_gate_met_by_entry_for_same_day_only():
    progress = InMemoryProgress()
    progress.add(1, date(2025, 3, 3))
    gate = ProgressGate(progress)

    assert gate.check(1, date(2025, 3, 3)) is True
    assert gate.check(1, date(2025, 3, 4)) is False
    assert gate.check(2, date(2025, 3, 3)) is False


def test_blank_entry_does_not_count():
    progress = InMemoryProgress()
    progress.add(1, date(2025, 3, 3), notes="   ")
    assert ProgressGate(progress).check(1, date(2025, 3, 3)) is False
