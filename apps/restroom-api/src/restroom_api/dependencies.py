from __future__ import annotations

import logging

from devkit.config import ServiceSettings, load_settings
from geo_engine.regions import Region

from restroom_api.cache import DatasetCache
from restroom_api.clients.refuge_client import RefugeRestroomsClient
from restroom_api.clients.toilet_map_client import ToiletMapClient
from restroom_api.observability import PrometheusLookupMetrics
from restroom_api.rate_limit import (
    InMemoryRequestWindowStore,
    RedisRequestWindowStore,
    RequestWindowStore,
    SlidingWindowRateLimiter,
)
from restroom_api.services.nearest_service import NearestRestroomService
from restroom_api.services.providers import UkDatasetProvider, UsProximityProvider

logger = logging.getLogger(__name__)

_settings = load_settings("restroom-api")
_lookup_metrics = PrometheusLookupMetrics()

_toilet_map_client = ToiletMapClient(
    dataset_page_url=_settings.UK_DATASET_PAGE_URL,
    timeout_seconds=_settings.UPSTREAM_TIMEOUT_SECONDS,
)
_refuge_client = RefugeRestroomsClient(
    base_url=_settings.US_API_BASE_URL,
    timeout_seconds=_settings.UPSTREAM_TIMEOUT_SECONDS,
)
_dataset_cache = DatasetCache(
    loader=_toilet_map_client,
    ttl_seconds=_settings.DATASET_CACHE_TTL_SECONDS,
    failure_backoff_seconds=_settings.DATASET_FAILURE_BACKOFF_SECONDS,
    metrics=_lookup_metrics,
)
_nearest_service = NearestRestroomService(
    providers={
        Region.UK: UkDatasetProvider(_dataset_cache, dataset_page_url=_settings.UK_DATASET_PAGE_URL),
        Region.US: UsProximityProvider(
            _refuge_client,
            page_size=_settings.PROXIMITY_PAGE_SIZE,
            max_pages=_settings.PROXIMITY_MAX_PAGES,
        ),
    },
    metrics=_lookup_metrics,
)


def _build_rate_limit_store(redis_url: str | None) -> RequestWindowStore:
    if not redis_url:
        return InMemoryRequestWindowStore()
    try:
        import redis.asyncio as redis

        client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
    except (ImportError, ValueError) as exc:
        logger.warning("redis_rate_limit_unavailable", extra={"error": str(exc)})
        return InMemoryRequestWindowStore()
    return RedisRequestWindowStore(client, window_seconds=60)


_rate_limiter = SlidingWindowRateLimiter(
    _build_rate_limit_store(_settings.REDIS_URL),
    limit_per_minute=_settings.RATE_LIMIT_PER_MINUTE,
    window_seconds=60,
)


def get_settings() -> ServiceSettings:
    return _settings


def get_nearest_service() -> NearestRestroomService:
    return _nearest_service


def get_dataset_cache() -> DatasetCache:
    return _dataset_cache


def get_rate_limiter() -> SlidingWindowRateLimiter:
    return _rate_limiter


def get_lookup_metrics() -> PrometheusLookupMetrics:
    return _lookup_metrics
