"""Pytest configuration and shared fixtures."""

import pytest

from config import MapSettings
from leaflet_map import LeafletMap
from listings import Listing, normalize_all
from markers import MarkerSynchronizer


@pytest.fixture
def scenario_listings():
    """The three-listing scenario: one with unknown rent."""
    return normalize_all([
        {"id": "1", "rent": 800, "distance": 0.5},
        {"id": "2", "rent": None, "distance": 0.2},
        {"id": "3", "rent": 600, "distance": 1.0},
    ])


@pytest.fixture
def listings():
    """A mixed batch with missing fields and ties."""
    return [
        Listing(id="a", name="Calder Commons", address="310 E Calder Way", rent=900, bedrooms=2, distance=0.4),
        Listing(id="b", name="The Rise", address="532 E College Ave", rent=None, bedrooms=None, distance=None),
        Listing(id="c", name="Beaver Hill", address="340 E Beaver Ave", rent=650, bedrooms=1, distance=0.4),
        Listing(id="d", name="Park Crest", address="1000 Plaza Dr", rent=1200, bedrooms=3, distance=2.1,
                coordinates=(40.79, -77.84)),
        Listing(id="e", name="Nittany Garden", address="820 W College Ave", rent=650, bedrooms=2, distance=None),
        Listing(id="f", name="The Meridian", address="445 Waupelani Dr", rent=None, bedrooms=4, distance=1.3),
    ]


@pytest.fixture
def map_settings():
    return MapSettings()


@pytest.fixture
def leaflet_map(map_settings):
    return LeafletMap(map_settings)


@pytest.fixture
def synchronizer(leaflet_map, map_settings):
    sync = MarkerSynchronizer(leaflet_map, map_settings)
    sync.initialize()
    return sync
