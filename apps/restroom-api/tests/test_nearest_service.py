from __future__ import annotations

import math

import pytest

from geo_engine.models import GeoPoint
from geo_engine.regions import Region

from restroom_api.cache import DatasetCache
from restroom_api.errors import InvalidCoordinatesError, UnsupportedRegionError, UpstreamUnavailableError
from restroom_api.schemas.restroom import RestroomRecord, SourceDescriptor
from restroom_api.services.nearest_service import NearestRestroomService, clamp_limit, rank_by_distance
from restroom_api.services.providers import ProviderResult, UkDatasetProvider

LONDON = (51.5074, -0.1278)
NEW_YORK = (40.7128, -74.0060)


def _record(record_id: str, lat: float, lon: float) -> RestroomRecord:
    return RestroomRecord(id=record_id, name=f"Toilet {record_id}", latitude=lat, longitude=lon)


class StaticProvider:
    def __init__(self, records: list[RestroomRecord], name: str = "static") -> None:
        self.records = records
        self.name = name
        self.calls: list[tuple[GeoPoint, int]] = []
        self.error: Exception | None = None

    async def fetch_candidates(self, point: GeoPoint, limit: int) -> ProviderResult:
        self.calls.append((point, limit))
        if self.error is not None:
            raise self.error
        source = SourceDescriptor(name=self.name, reference_url="https://example.com", cached_at="2024-01-01T00:00:00Z")
        return ProviderResult(records=self.records, source=source)


class RecordingMetrics:
    def __init__(self) -> None:
        self.lookups: list[tuple[str, str]] = []

    def observe_lookup(self, region: str, outcome: str) -> None:
        self.lookups.append((region, outcome))

    def observe_dataset_refresh(self, outcome: str) -> None:
        pass


def _uk_records(count: int = 12) -> list[RestroomRecord]:
    # spread north of central London, listed in reverse distance order
    return [_record(f"uk-{index}", LONDON[0] + 0.01 * (count - index), LONDON[1]) for index in range(count)]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, 5), (math.nan, 5), (math.inf, 5), (0, 1), (-4, 1), (3.7, 3), (20, 20), (100, 20)],
)
def test_clamp_limit(raw, expected: int) -> None:
    assert clamp_limit(raw) == expected


def test_rank_by_distance_keeps_provider_order_for_ties() -> None:
    origin = GeoPoint(lat=LONDON[0], lng=LONDON[1])
    records = [_record(f"tie-{index}", LONDON[0] + 0.01, LONDON[1]) for index in range(4)]
    records.insert(2, _record("closest", LONDON[0], LONDON[1]))

    ranked = rank_by_distance(origin, records, limit=4)

    assert [record.id for record in ranked] == ["closest", "tie-0", "tie-1", "tie-2"]
    assert ranked[0].distance_km == 0.0


@pytest.mark.asyncio
async def test_uk_lookup_returns_at_most_limit_sorted_records() -> None:
    uk = StaticProvider(_uk_records())
    service = NearestRestroomService({Region.UK: uk, Region.US: StaticProvider([])})

    result = await service.find_nearest(*LONDON, limit=5)

    distances = [toilet.distance_km for toilet in result.toilets]
    assert len(result.toilets) == 5
    assert distances == sorted(distances)
    assert all(distance is not None and distance >= 0 for distance in distances)
    assert result.query.region == "UK"
    assert result.query.limit == 5


@pytest.mark.asyncio
async def test_lookup_does_not_mutate_provider_records() -> None:
    records = _uk_records(3)
    service = NearestRestroomService({Region.UK: StaticProvider(records)})

    await service.find_nearest(*LONDON, limit=3)

    assert all(record.distance_km is None for record in records)


@pytest.mark.asyncio
async def test_us_coordinates_dispatch_to_us_provider() -> None:
    uk = StaticProvider(_uk_records())
    us = StaticProvider([_record("us-1", NEW_YORK[0], NEW_YORK[1])], name="us")
    service = NearestRestroomService({Region.UK: uk, Region.US: us})

    result = await service.find_nearest(*NEW_YORK, limit=None)

    assert uk.calls == []
    assert us.calls[0][1] == 5
    assert result.source.name == "us"
    assert result.query.region == "US"


@pytest.mark.asyncio
@pytest.mark.parametrize(("lat", "lon"), [(math.nan, 0.0), (51.5, math.inf), (None, -0.1), ("51.5", "-0.1")])
async def test_invalid_coordinates_fail_before_any_provider_call(lat, lon) -> None:
    uk = StaticProvider(_uk_records())
    metrics = RecordingMetrics()
    service = NearestRestroomService({Region.UK: uk}, metrics=metrics)

    with pytest.raises(InvalidCoordinatesError) as exc_info:
        await service.find_nearest(lat, lon, limit=5)

    assert exc_info.value.code == "INVALID_COORDINATES"
    assert uk.calls == []
    assert metrics.lookups == [("invalid", "invalid_coordinates")]


@pytest.mark.asyncio
async def test_coordinates_outside_both_regions_are_rejected() -> None:
    uk = StaticProvider(_uk_records())
    service = NearestRestroomService({Region.UK: uk, Region.US: StaticProvider([])})

    with pytest.raises(UnsupportedRegionError) as exc_info:
        await service.find_nearest(0.0, 0.0, limit=5)

    assert exc_info.value.code == "OUTSIDE_SUPPORTED_REGIONS"
    assert uk.calls == []


@pytest.mark.asyncio
async def test_provider_errors_propagate_unchanged() -> None:
    uk = StaticProvider(_uk_records())
    error = UpstreamUnavailableError("uk", "Dataset JSON request failed (500)", upstream_status=500)
    uk.error = error
    metrics = RecordingMetrics()
    service = NearestRestroomService({Region.UK: uk}, metrics=metrics)

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await service.find_nearest(*LONDON, limit=5)

    assert exc_info.value is error
    assert len(uk.calls) == 1
    assert metrics.lookups == [("UK", "upstream_unavailable")]


class RowsLoader:
    def __init__(self, rows: list[dict]) -> None:
        self.rows = rows
        self.calls = 0

    async def fetch_dataset(self) -> tuple[str, list[dict]]:
        self.calls += 1
        return "https://cdn.example.com/exports/toilets-x.json?download=1", self.rows


@pytest.mark.asyncio
async def test_uk_dataset_provider_through_cache_builds_source_descriptor() -> None:
    rows = [
        {"id": index, "location": {"coordinates": [LONDON[1] + 0.001 * index, LONDON[0]]}}
        for index in range(8)
    ]
    loader = RowsLoader(rows)
    cache = DatasetCache(loader, clock=lambda: 1_700_000_000.0)
    provider = UkDatasetProvider(cache, dataset_page_url="https://www.toiletmap.org.uk/dataset")
    service = NearestRestroomService({Region.UK: provider})

    first = await service.find_nearest(*LONDON, limit=3)
    second = await service.find_nearest(LONDON[0], LONDON[1] + 0.0071, limit=3)

    assert loader.calls == 1
    assert [toilet.id for toilet in first.toilets] == ["0", "1", "2"]
    assert [toilet.id for toilet in second.toilets] == ["7", "6", "5"]
    assert first.source.license == "CC BY 4.0"
    assert first.source.dataset_export_url == "https://cdn.example.com/exports/toilets-x.json?download=1"
    assert first.source.cached_at == "2023-11-14T22:13:20Z"
