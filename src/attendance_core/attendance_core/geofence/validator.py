"""
Geofence validation.
Uses the Haversine formula to measure the distance to each registered worksite.
"""
from __future__ import annotations

import math
from typing import Optional

import structlog

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_M, DEFAULT_LOW_ACCURACY_M, EARTH_RADIUS_M
from ..core.exceptions import ValidationError
from .model import Coordinate, GeofenceResult, Worksite
from .repository import WorksiteRepository

logger = structlog.get_logger(__name__)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def check_coordinate(coordinate: Coordinate) -> None:
    lat, lng = coordinate.latitude, coordinate.longitude
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        raise ValidationError("Latitude and longitude must be numbers")
    if math.isnan(lat) or math.isnan(lng) or not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValidationError(f"Invalid coordinates ({lat}, {lng})")
    if coordinate.accuracy_m is not None and coordinate.accuracy_m < 0:
        raise ValidationError("Location accuracy cannot be negative")


def proximity_score(distance_m: float, radius_m: float) -> int:
    """0..100, 100 at the fence center and 0 at or beyond the edge."""
    if radius_m <= 0 or distance_m > radius_m:
        return 0
    return max(0, round((1 - distance_m / radius_m) * 100))


class GeofenceValidator:
    def __init__(
        self,
        worksites: WorksiteRepository,
        *,
        default_radius_m: float = DEFAULT_GEOFENCE_RADIUS_M,
        low_accuracy_m: float = DEFAULT_LOW_ACCURACY_M,
    ):
        self._worksites = worksites
        self._default_radius_m = float(default_radius_m)
        self._low_accuracy_m = float(low_accuracy_m)

    def _radius(self, site: Worksite) -> float:
        return float(site.radius_m) if site.radius_m else self._default_radius_m

    def is_low_confidence(self, accuracy_m: Optional[float]) -> bool:
        # Missing or zero accuracy is accepted, but we cannot vouch for it.
        return not accuracy_m or accuracy_m > self._low_accuracy_m

    def validate(self, coordinate: Coordinate) -> GeofenceResult:
        check_coordinate(coordinate)
        low_confidence = self.is_low_confidence(coordinate.accuracy_m)

        sites = list(self._worksites.list_active())
        if not sites:
            return GeofenceResult(
                nearest_site_id=None,
                distance_m=None,
                radius_m=None,
                within_radius=False,
                low_confidence=low_confidence,
            )

        best: Optional[tuple[float, Worksite]] = None
        inside: Optional[tuple[float, Worksite]] = None
        for site in sites:
            distance = haversine_distance(coordinate.latitude, coordinate.longitude, site.latitude, site.longitude)
            if best is None or distance < best[0]:
                best = (distance, site)
            if distance <= self._radius(site) and (inside is None or distance < inside[0]):
                inside = (distance, site)

        # Prefer the closest fence that contains the point; a larger fence
        # further away can contain it while a nearer small one does not.
        distance, site = inside or best
        radius = self._radius(site)
        result = GeofenceResult(
            nearest_site_id=site.site_id,
            distance_m=round(distance, 2),
            radius_m=radius,
            within_radius=inside is not None,
            low_confidence=low_confidence,
            proximity_score=proximity_score(distance, radius),
        )
        logger.debug(
            "geofence_checked",
            site_id=site.site_id,
            distance_m=result.distance_m,
            within_radius=result.within_radius,
            low_confidence=low_confidence,
        )
        return result
