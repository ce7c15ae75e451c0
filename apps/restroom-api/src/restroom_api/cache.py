from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from restroom_api.normalize import normalize_uk_rows
from restroom_api.observability import LookupMetricsRecorder
from restroom_api.schemas.restroom import RestroomRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60


class DatasetLoader(Protocol):
    async def fetch_dataset(self) -> tuple[str, list[Any]]: ...


@dataclass(frozen=True)
class DatasetSnapshot:
    records: tuple[RestroomRecord, ...] = ()
    source_url: str = ""
    fetched_at: float = 0.0


class DatasetCache:
    """Most recent full pull of the bulk dataset.

    The snapshot is only ever replaced as a whole, and only after a refresh
    succeeds. A failed refresh leaves the previous snapshot in place and the
    error propagates to every caller waiting on that refresh.

    Refreshes are single-flight: concurrent callers that find the cache stale
    await the same in-flight refresh task, so they all receive its snapshot
    or its error, and the upstream is contacted once.

    ``failure_backoff_seconds`` (0 disables it) lets callers keep reading a
    stale, non-empty snapshot for a while after a failed refresh instead of
    hitting the failing upstream again on every lookup.
    """

    def __init__(
        self,
        loader: DatasetLoader,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        failure_backoff_seconds: float = 0,
        clock: Callable[[], float] = time.time,
        metrics: LookupMetricsRecorder | None = None,
    ) -> None:
        self._loader = loader
        self._ttl_seconds = ttl_seconds
        self._failure_backoff_seconds = failure_backoff_seconds
        self._clock = clock
        self._metrics = metrics
        self._snapshot = DatasetSnapshot()
        self._last_failure_at: float | None = None
        self._inflight: asyncio.Future[DatasetSnapshot] | None = None

    def peek(self) -> DatasetSnapshot:
        return self._snapshot

    def is_fresh(self, now: float) -> bool:
        snapshot = self._snapshot
        return bool(snapshot.records) and now - snapshot.fetched_at < self._ttl_seconds

    async def get_dataset(self) -> DatasetSnapshot:
        now = self._clock()
        if self.is_fresh(now) or self._in_failure_backoff(now):
            return self._snapshot

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh(now))
        # shielded: one cancelled caller leaves the shared refresh running
        return await asyncio.shield(self._inflight)

    def _in_failure_backoff(self, now: float) -> bool:
        if self._failure_backoff_seconds <= 0 or self._last_failure_at is None:
            return False
        if not self._snapshot.records:
            return False
        return now - self._last_failure_at < self._failure_backoff_seconds

    async def _refresh(self, now: float) -> DatasetSnapshot:
        try:
            return await self._load(now)
        finally:
            self._inflight = None

    async def _load(self, now: float) -> DatasetSnapshot:
        previous = self._snapshot
        logger.info(
            "dataset_refresh_started",
            extra={"cached_record_count": len(previous.records), "cached_at": previous.fetched_at},
        )
        try:
            source_url, rows = await self._loader.fetch_dataset()
        except Exception as exc:
            self._last_failure_at = now
            self._record_refresh("failure")
            logger.warning("dataset_refresh_failed", extra={"error": str(exc) or type(exc).__name__})
            raise

        records = tuple(normalize_uk_rows(rows))
        self._snapshot = DatasetSnapshot(records=records, source_url=source_url, fetched_at=now)
        self._last_failure_at = None
        self._record_refresh("success")
        logger.info(
            "dataset_refresh_completed",
            extra={"row_count": len(rows), "record_count": len(records), "source_url": source_url},
        )
        return self._snapshot

    def _record_refresh(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.observe_dataset_refresh(outcome)
