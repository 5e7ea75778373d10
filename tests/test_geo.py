import math

import pytest
from hypothesis import given, strategies as st

from cie.models import Coordinate
from cie.utils.geo import EARTH_RADIUS_METERS, distance_meters, validate_coordinates


coordinates = st.builds(
    Coordinate,
    lat=st.floats(min_value=-90, max_value=90, allow_nan=False, allow_infinity=False),
    lon=st.floats(min_value=-180, max_value=180, allow_nan=False, allow_infinity=False),
)


@given(a=coordinates, b=coordinates)
def test_distance_is_symmetric(a, b):
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a), rel=1e-12, abs=1e-6)


@given(a=coordinates)
def test_distance_to_self_is_zero(a):
    assert distance_meters(a, a) == 0.0


@given(a=coordinates, b=coordinates)
def test_distance_is_finite_and_bounded(a, b):
    distance = distance_meters(a, b)
    assert math.isfinite(distance)
    assert 0.0 <= distance <= math.pi * EARTH_RADIUS_METERS + 1e-6


def test_distance_one_degree_of_latitude():
    a = Coordinate(lat=0.0, lon=0.0)
    b = Coordinate(lat=1.0, lon=0.0)
    assert distance_meters(a, b) == pytest.approx(111_194.93, abs=0.01)


def test_distance_known_city_pair():
    mumbai = Coordinate(lat=19.0760, lon=72.8777)
    pune = Coordinate(lat=18.5204, lon=73.8567)
    assert distance_meters(mumbai, pune) == pytest.approx(120_150, rel=0.01)


def test_distance_antipodal_points():
    a = Coordinate(lat=0.0, lon=0.0)
    b = Coordinate(lat=0.0, lon=180.0)
    assert distance_meters(a, b) == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_distance_pole_to_pole():
    north = Coordinate(lat=90.0, lon=0.0)
    south = Coordinate(lat=-90.0, lon=45.0)
    assert distance_meters(north, south) == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_distance_distinct_points_is_positive():
    a = Coordinate(lat=19.0760, lon=72.8777)
    b = Coordinate(lat=19.0761, lon=72.8777)
    assert distance_meters(a, b) > 0


def test_validate_coordinates():
    assert validate_coordinates(0.0, 0.0)
    assert validate_coordinates(-90.0, 180.0)
    assert not validate_coordinates(90.5, 0.0)
    assert not validate_coordinates(0.0, -180.5)
    assert not validate_coordinates(float("nan"), 0.0)
    assert not validate_coordinates(0.0, float("inf"))
    assert not validate_coordinates(None, 0.0)
