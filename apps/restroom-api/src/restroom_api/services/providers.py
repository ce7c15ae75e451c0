from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from geo_engine.models import GeoPoint

from restroom_api.cache import DatasetCache
from restroom_api.clients.refuge_client import DOCS_URL, RefugeRestroomsClient
from restroom_api.normalize import ProximityCandidate, normalize_us_row
from restroom_api.schemas.restroom import RestroomRecord, SourceDescriptor

logger = logging.getLogger(__name__)

UK_SOURCE_NAME = "The Great British Public Toilet Map"
UK_LICENSE = "CC BY 4.0"
US_SOURCE_NAME = "Refuge Restrooms API"


def to_iso8601(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ProviderResult:
    records: Sequence[RestroomRecord]
    source: SourceDescriptor


class RestroomProvider(Protocol):
    async def fetch_candidates(self, point: GeoPoint, limit: int) -> ProviderResult: ...


class UkDatasetProvider:
    """Serves every record of the cached bulk export; ranking happens later."""

    def __init__(self, cache: DatasetCache, dataset_page_url: str) -> None:
        self._cache = cache
        self._dataset_page_url = dataset_page_url

    async def fetch_candidates(self, point: GeoPoint, limit: int) -> ProviderResult:
        snapshot = await self._cache.get_dataset()
        source = SourceDescriptor(
            name=UK_SOURCE_NAME,
            reference_url=self._dataset_page_url,
            dataset_export_url=snapshot.source_url or None,
            license=UK_LICENSE,
            cached_at=to_iso8601(snapshot.fetched_at),
        )
        return ProviderResult(records=snapshot.records, source=source)


class UsProximityProvider:
    def __init__(
        self,
        client: RefugeRestroomsClient,
        page_size: int = 100,
        max_pages: int = 4,
        primary_country: str = "US",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._page_size = page_size
        self._max_pages = max_pages
        self._primary_country = primary_country
        self._clock = clock

    async def fetch_candidates(self, point: GeoPoint, limit: int) -> ProviderResult:
        candidates = await self._collect(point, limit)
        primary = [item for item in candidates if item.country == self._primary_country]
        # only fall back to foreign rows when the query found no domestic ones
        pool = primary or candidates
        source = SourceDescriptor(
            name=US_SOURCE_NAME,
            reference_url=DOCS_URL,
            endpoint=self._client.endpoint,
            cached_at=to_iso8601(self._clock()),
        )
        return ProviderResult(records=[item.record for item in pool], source=source)

    async def _collect(self, point: GeoPoint, limit: int) -> list[ProximityCandidate]:
        seen_ids: set[str] = set()
        candidates: list[ProximityCandidate] = []
        primary_count = 0
        pages_fetched = 0

        for page in range(self._max_pages):
            rows = await self._client.fetch_page(point, self._page_size, offset=page * self._page_size)
            pages_fetched += 1
            if not rows:
                break
            for row in rows:
                candidate = normalize_us_row(row)
                if candidate is None or candidate.record.id in seen_ids:
                    continue
                seen_ids.add(candidate.record.id)
                candidates.append(candidate)
                if candidate.country == self._primary_country:
                    primary_count += 1
            if primary_count >= limit:
                break

        logger.info(
            "proximity_fetch_completed",
            extra={
                "provider": "us",
                "pages_fetched": pages_fetched,
                "candidate_count": len(candidates),
                "primary_count": primary_count,
            },
        )
        return candidates
