from __future__ import annotations

import heapq
import logging
import math
from collections.abc import Mapping, Sequence

from geo_engine.distance import haversine_distance_km
from geo_engine.models import GeoPoint
from geo_engine.regions import Region, classify_region

from restroom_api.errors import InvalidCoordinatesError, RestroomLookupError, UnsupportedRegionError
from restroom_api.observability import LookupMetricsRecorder
from restroom_api.schemas.restroom import NearestQuery, NearestRestroomsResult, RestroomRecord
from restroom_api.services.providers import RestroomProvider

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
MIN_LIMIT = 1
MAX_LIMIT = 20


def _is_finite_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def clamp_limit(limit: float | None) -> int:
    if limit is None or not _is_finite_number(limit):
        return DEFAULT_LIMIT
    return min(max(math.floor(limit), MIN_LIMIT), MAX_LIMIT)


def rank_by_distance(
    origin: GeoPoint,
    records: Sequence[RestroomRecord],
    limit: int,
) -> list[RestroomRecord]:
    """Return the `limit` closest records, each annotated with `distance_km`.

    Equal distances keep the provider's ordering.
    """
    distances = (
        (haversine_distance_km(origin, GeoPoint(lat=record.latitude, lng=record.longitude)), record)
        for record in records
    )
    nearest = heapq.nsmallest(limit, distances, key=lambda item: item[0])
    return [record.model_copy(update={"distance_km": distance}) for distance, record in nearest]


class NearestRestroomService:
    def __init__(
        self,
        providers: Mapping[Region, RestroomProvider],
        metrics: LookupMetricsRecorder | None = None,
    ) -> None:
        self._providers = providers
        self._metrics = metrics

    async def find_nearest(
        self,
        lat: float,
        lon: float,
        limit: float | None = None,
    ) -> NearestRestroomsResult:
        if not (_is_finite_number(lat) and _is_finite_number(lon)):
            self._record("invalid", "invalid_coordinates")
            raise InvalidCoordinatesError()

        bounded_limit = clamp_limit(limit)
        origin = GeoPoint(lat=float(lat), lng=float(lon))
        region = classify_region(origin)
        provider = self._providers.get(region)
        if provider is None:
            self._record(region.value, "unsupported_region")
            raise UnsupportedRegionError()

        try:
            result = await provider.fetch_candidates(origin, bounded_limit)
        except RestroomLookupError as exc:
            self._record(region.value, exc.code.lower())
            raise

        toilets = rank_by_distance(origin, result.records, bounded_limit)
        self._record(region.value, "ok")
        logger.info(
            "nearest_lookup_completed",
            extra={
                "region": region.value,
                "limit": bounded_limit,
                "candidate_count": len(result.records),
                "result_count": len(toilets),
            },
        )
        return NearestRestroomsResult(
            query=NearestQuery(lat=origin.lat, lon=origin.lng, limit=bounded_limit, region=region.value),
            source=result.source,
            toilets=toilets,
        )

    def _record(self, region: str, outcome: str) -> None:
        if self._metrics:
            self._metrics.observe_lookup(region, outcome)
