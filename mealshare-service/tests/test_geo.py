"""
Tests for great-circle distance helpers.
"""
import math

import pytest

from mealshare_service.application.geo import DEFAULT_RADIUS_KM, EARTH_RADIUS_KM, distance_km, within
from mealshare_service.domain.models import Coordinate

MADRID = Coordinate(40.4168, -3.7038)
BARCELONA = Coordinate(41.3874, 2.1686)


class TestDistance:
    """Haversine distance."""

    def test_zero_for_same_point(self):
        assert distance_km(MADRID, MADRID) == 0.0

    def test_symmetric(self):
        assert distance_km(MADRID, BARCELONA) == pytest.approx(distance_km(BARCELONA, MADRID))

    def test_madrid_barcelona(self):
        assert 500 < distance_km(MADRID, BARCELONA) < 650

    def test_antipodes_do_not_fail(self):
        d = distance_km(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
        assert d == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-6)

    def test_poles(self):
        d = distance_km(Coordinate(90.0, 0.0), Coordinate(-90.0, 0.0))
        assert d == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-6)


class TestWithin:
    """Radius test."""

    def test_default_radius(self):
        assert DEFAULT_RADIUS_KM == 5.0

    def test_nearby_point_is_within(self):
        assert within(MADRID, Coordinate(40.4200, -3.7000))

    def test_far_point_is_outside(self):
        assert not within(MADRID, BARCELONA)

    def test_boundary_is_inclusive(self):
        d = distance_km(MADRID, BARCELONA)
        assert within(MADRID, BARCELONA, d)
        assert not within(MADRID, BARCELONA, d - 0.001)
