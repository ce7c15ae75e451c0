"""Coverage areas of the upstream restroom providers."""

from __future__ import annotations

from enum import Enum

from geo_engine.models import BoundingBox, GeoPoint


class Region(str, Enum):
    UK = "UK"
    US = "US"
    UNSUPPORTED = "UNSUPPORTED"


UK_BOUNDS = BoundingBox(min_lat=49.8, max_lat=60.9, min_lng=-8.7, max_lng=1.8)
US_BOUNDS = BoundingBox(min_lat=18.5, max_lat=71.6, min_lng=-179.2, max_lng=-66.0)

# evaluation order matters: the first matching box wins
_REGION_BOUNDS: tuple[tuple[Region, BoundingBox], ...] = (
    (Region.UK, UK_BOUNDS),
    (Region.US, US_BOUNDS),
)


def classify_region(
    point: GeoPoint,
    bounds: tuple[tuple[Region, BoundingBox], ...] = _REGION_BOUNDS,
) -> Region:
    for region, box in bounds:
        if box.contains(point):
            return region
    return Region.UNSUPPORTED
