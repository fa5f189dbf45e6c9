from __future__ import annotations

from typing import Protocol, Sequence

from .model import Worksite


class WorksiteRepository(Protocol):
    def list_active(self) -> Sequence[Worksite]:
        raise NotImplementedError
