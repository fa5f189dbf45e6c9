from __future__ import annotations

import pytest

from src.attendance_core.attendance_core.core.enums import WorkLocation
from src.attendance_core.attendance_core.core.exceptions import ValidationError
from src.attendance_core.attendance_core.geofence.model import Coordinate, Worksite
from src.attendance_core.attendance_core.geofence.validator import GeofenceValidator, haversine_distance, proximity_score
from tests.fakes import OFFICE, InMemoryWorksites

# Roughly one metre of latitude.
DEG_PER_M = 1 / 111_195


def _near(site: Worksite, metres_north: float, accuracy=10.0) -> Coordinate:
    return Coordinate(latitude=site.latitude + metres_north * DEG_PER_M, longitude=site.longitude, accuracy_m=accuracy)


def test_haversine_distance_known_value():
    # One degree of latitude is ~111.2 km.
    assert haversine_distance(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)
    assert haversine_distance(10, 20, 10, 20) == 0


def test_inside_radius_is_office():
    validator = GeofenceValidator(InMemoryWorksites([OFFICE]))
    result = validator.validate(_near(OFFICE, 50))

    assert result.within_radius is True
    assert result.nearest_site_id == "hq"
    assert result.distance_m == pytest.approx(50, abs=1)
    assert result.classification == WorkLocation.OFFICE
    assert 40 <= result.proximity_score <= 60


def test_outside_radius_is_remote():
    validator = GeofenceValidator(InMemoryWorksites([OFFICE]))
    result = validator.validate(_near(OFFICE, 5000))

    assert result.within_radius is False
    assert result.classification == WorkLocation.REMOTE
    assert result.proximity_score == 0
    assert result.distance_m == pytest.approx(5000, rel=0.01)


def test_empty_registry_is_not_an_error():
    validator = GeofenceValidator(InMemoryWorksites([]))
    result = validator.validate(Coordinate(1.0, 2.0, 5.0))

    assert result.within_radius is False
    assert result.nearest_site_id is None
    assert result.classification == WorkLocation.REMOTE


def test_prefers_containing_fence_over_nearer_small_one():
    small = Worksite(site_id="kiosk", name="Kiosk", latitude=OFFICE.latitude, longitude=OFFICE.longitude, radius_m=20)
    big = Worksite(
        site_id="campus",
        name="Campus",
        latitude=OFFICE.latitude + 200 * DEG_PER_M,
        longitude=OFFICE.longitude,
        radius_m=500,
    )
    validator = GeofenceValidator(InMemoryWorksites([small, big]))
    result = validator.validate(_near(OFFICE, 60))

    assert result.within_radius is True
    assert result.nearest_site_id == "campus"


def test_site_without_radius_uses_default():
    site = Worksite(site_id="s", name="S", latitude=0.0, longitude=0.0, radius_m=None)
    validator = GeofenceValidator(InMemoryWorksites([site]), default_radius_m=300)

    assert validator.validate(_near(site, 250)).within_radius is True
    assert validator.validate(_near(site, 350)).within_radius is False


@pytest.mark.parametrize("accuracy, expected", [(None, True), (0, True), (15.0, False), (250.0, True)])
def test_low_confidence_accuracy(accuracy, expected):
    validator = GeofenceValidator(InMemoryWorksites([OFFICE]), low_accuracy_m=100)
    assert validator.validate(_near(OFFICE, 10, accuracy=accuracy)).low_confidence is expected


@pytest.mark.parametrize("lat, lng", [(91, 0), (0, -181), (float("nan"), 0)])
def test_invalid_coordinates_rejected(lat, lng):
    validator = GeofenceValidator(InMemoryWorksites([OFFICE]))
    with pytest.raises(ValidationError):
        validator.validate(Coordinate(lat, lng))


def test_proximity_score_edges():
    assert proximity_score(0, 100) == 100
    assert proximity_score(100, 100) == 0
    assert proximity_score(150, 100) == 0
    assert proximity_score(25, 100) == 75
