import pytest

from itinerary.schemas import Location
from itinerary.tools.geo import haversine_km, within_radius


class _Spot:
    def __init__(self, name, lat, lon):
        self.name = name
        self.coordinates = Location(latitude=lat, longitude=lon)


def test_distance_to_self_is_zero(west_lake):
    assert haversine_km(west_lake, west_lake) == 0.0


def test_distance_is_symmetric():
    hangzhou = Location(latitude=30.2741, longitude=120.1551)
    shanghai = Location(latitude=31.2304, longitude=121.4737)

    there = haversine_km(hangzhou, shanghai)
    back = haversine_km(shanghai, hangzhou)

    assert there == pytest.approx(back)
    # roughly 165 km as the crow flies
    assert 150 < there < 180


def test_antipodal_points_do_not_overflow():
    a = Location(latitude=0.0, longitude=0.0)
    b = Location(latitude=0.0, longitude=180.0)

    assert haversine_km(a, b) == pytest.approx(20015.09, rel=1e-4)


def test_within_radius_is_inclusive(west_lake):
    spots = [_Spot("here", west_lake.latitude, west_lake.longitude), _Spot("far", 31.23, 121.47)]

    assert [s.name for s in within_radius(spots, west_lake, 0.0)] == ["here"]
    assert [s.name for s in within_radius(spots, west_lake, 10_000.0)] == ["here", "far"]


def test_within_radius_accepts_custom_key(west_lake):
    pairs = [("here", west_lake)]

    kept = within_radius(pairs, west_lake, 1.0, key=lambda pair: pair[1])

    assert kept == pairs
