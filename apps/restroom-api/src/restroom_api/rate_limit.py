from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import uuid4


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int = 0


class RequestWindowStore(ABC):
    """Timestamps of accepted lookups, keyed by client."""

    @abstractmethod
    async def hits_since(self, key: str, cutoff_seconds: float) -> tuple[int, float | None]:
        """Drop hits older than ``cutoff_seconds``; return the count and the oldest kept hit."""

    @abstractmethod
    async def record_hit(self, key: str, now_seconds: float) -> None: ...


class RedisLikeClient(Protocol):
    async def zadd(self, key: str, mapping: dict[str, float]) -> int: ...

    async def zremrangebyscore(self, key: str, min: float, max: float) -> int: ...

    async def zcard(self, key: str) -> int: ...

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list[Any]: ...

    async def expire(self, key: str, time: int) -> bool: ...


class InMemoryRequestWindowStore(RequestWindowStore):
    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}

    async def hits_since(self, key: str, cutoff_seconds: float) -> tuple[int, float | None]:
        hits = self._hits.get(key)
        if hits is None:
            return 0, None
        while hits and hits[0] < cutoff_seconds:
            hits.popleft()
        if not hits:
            del self._hits[key]
            return 0, None
        return len(hits), hits[0]

    async def record_hit(self, key: str, now_seconds: float) -> None:
        self._hits.setdefault(key, deque()).append(now_seconds)


class RedisRequestWindowStore(RequestWindowStore):
    """One sorted set per client, scored by hit time, shared by every API process."""

    def __init__(self, client: RedisLikeClient, window_seconds: int = 60, prefix: str = "restroom_api") -> None:
        self._client = client
        self._window_seconds = window_seconds
        self._prefix = prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}:rate_limit:{key}"

    async def hits_since(self, key: str, cutoff_seconds: float) -> tuple[int, float | None]:
        redis_key = self._redis_key(key)
        await self._client.zremrangebyscore(redis_key, float("-inf"), cutoff_seconds - 1e-9)
        count = await self._client.zcard(redis_key)
        if not count:
            return 0, None
        oldest = await self._client.zrange(redis_key, 0, 0, withscores=True)
        return count, float(oldest[0][1]) if oldest else None

    async def record_hit(self, key: str, now_seconds: float) -> None:
        redis_key = self._redis_key(key)
        await self._client.zadd(redis_key, {uuid4().hex: now_seconds})
        await self._client.expire(redis_key, self._window_seconds + 5)


class SlidingWindowRateLimiter:
    """Caps lookups per client over a trailing window; rejected requests are not counted."""

    def __init__(self, store: RequestWindowStore, limit_per_minute: int = 100, window_seconds: int = 60) -> None:
        self._store = store
        self._limit = limit_per_minute
        self._window_seconds = window_seconds

    async def check(self, key: str, now_seconds: float) -> RateLimitDecision:
        count, oldest = await self._store.hits_since(key, now_seconds - self._window_seconds)
        if count >= self._limit:
            # the window reopens once its oldest hit ages out
            reopens_at = (oldest if oldest is not None else now_seconds) + self._window_seconds
            return RateLimitDecision(
                allowed=False,
                limit=self._limit,
                remaining=0,
                retry_after_seconds=max(1, math.ceil(reopens_at - now_seconds)),
            )
        await self._store.record_hit(key, now_seconds)
        return RateLimitDecision(allowed=True, limit=self._limit, remaining=self._limit - count - 1)
