"""
Pytest configuration and shared fixtures.
"""

import math

import pytest

from walk_tracker.models import HOME_RADIUS_KM, Coordinate, Zone
from walk_tracker.store import WalkStore
from walk_tracker.tracker import WalkTracker


def east_km(km, lat=0.0):
    """Coordinate km kilometers east of (lat, 0) along the parallel (exact on the equator)."""
    return Coordinate(lat, math.degrees(km / 6371.0))


@pytest.fixture
def home_zone():
    """Home at (0, 0) with the default 50 m radius."""
    return Zone(id="home", name="Home", center=Coordinate(0.0, 0.0), radius_km=HOME_RADIUS_KM, color="#A8A5A3")


@pytest.fixture
def park_zone():
    """Named zone 1 km east of home, 100 m radius."""
    return Zone(id="zone_1", name="Park", center=east_km(1.0), radius_km=0.1, color="#34D399")


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "walk_data.json"


@pytest.fixture
def tracker(store_path):
    """Tracker with home set at (0, 0)."""
    t = WalkTracker(WalkStore(store_path))
    t.set_home(Coordinate(0.0, 0.0))
    return t
