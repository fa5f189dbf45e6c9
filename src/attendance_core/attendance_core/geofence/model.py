from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import WorkLocation


@dataclass(frozen=True)
class Coordinate:
    """A reported device position. accuracy_m is the GPS error radius, if known."""

    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None


@dataclass(frozen=True)
class Worksite:
    site_id: str
    name: str
    latitude: float
    longitude: float
    radius_m: Optional[float] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class GeofenceResult:
    nearest_site_id: Optional[str]
    distance_m: Optional[float]
    radius_m: Optional[float]
    within_radius: bool
    low_confidence: bool
    proximity_score: int = 0

    @property
    def classification(self) -> WorkLocation:
        """Office inside any fence; Remote otherwise (including an empty registry)."""
        return WorkLocation.OFFICE if self.within_radius else WorkLocation.REMOTE
