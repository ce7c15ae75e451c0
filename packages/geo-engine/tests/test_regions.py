import pytest

from geo_engine.models import BoundingBox, GeoPoint
from geo_engine.regions import UK_BOUNDS, Region, classify_region


@pytest.mark.parametrize(
    ("lat", "lng", "expected"),
    [
        (51.5, -0.1, Region.UK),
        (55.9533, -3.1883, Region.UK),
        (40.7, -74.0, Region.US),
        (61.2181, -149.9003, Region.US),
        (0.0, 0.0, Region.UNSUPPORTED),
        (48.8566, 2.3522, Region.UNSUPPORTED),
    ],
)
def test_classify_region(lat: float, lng: float, expected: Region) -> None:
    assert classify_region(GeoPoint(lat=lat, lng=lng)) is expected


def test_bounds_are_inclusive() -> None:
    corner = GeoPoint(lat=UK_BOUNDS.min_lat, lng=UK_BOUNDS.max_lng)
    assert classify_region(corner) is Region.UK


def test_first_matching_box_wins_on_overlap() -> None:
    shared = BoundingBox(min_lat=0.0, max_lat=10.0, min_lng=0.0, max_lng=10.0)
    bounds = ((Region.UK, shared), (Region.US, shared))
    assert classify_region(GeoPoint(lat=5.0, lng=5.0), bounds=bounds) is Region.UK
