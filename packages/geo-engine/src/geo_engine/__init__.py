"""Geo engine core package."""

from geo_engine.distance import EARTH_RADIUS_KM, haversine_distance_km
from geo_engine.models import BoundingBox, GeoPoint
from geo_engine.regions import UK_BOUNDS, US_BOUNDS, Region, classify_region

__all__ = [
    "BoundingBox",
    "EARTH_RADIUS_KM",
    "GeoPoint",
    "Region",
    "UK_BOUNDS",
    "US_BOUNDS",
    "classify_region",
    "haversine_distance_km",
]
