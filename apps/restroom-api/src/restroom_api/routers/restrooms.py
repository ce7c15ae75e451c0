from __future__ import annotations

import math
import time

from fastapi import APIRouter, Depends, Query, Request, Response

from restroom_api.dependencies import get_nearest_service, get_rate_limiter
from restroom_api.errors import RateLimitExceededError
from restroom_api.rate_limit import SlidingWindowRateLimiter
from restroom_api.response import success_response
from restroom_api.services.nearest_service import NearestRestroomService

router = APIRouter(prefix="/api", tags=["restrooms"])


def _resolve_client_key(request: Request) -> str:
    forwarded = request.headers.get("x-client-id")
    if forwarded:
        return forwarded
    if request.client:
        return request.client.host
    return "anonymous"


def _parse_number(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        return math.nan


@router.get("/nearest")
async def nearest_restrooms(
    request: Request,
    response: Response,
    lat: str | None = Query(default=None),
    lon: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    service: NearestRestroomService = Depends(get_nearest_service),
    rate_limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> dict:
    decision = await rate_limiter.check(_resolve_client_key(request), now_seconds=time.time())
    if not decision.allowed:
        raise RateLimitExceededError(decision.retry_after_seconds)

    latitude = _parse_number(lat)
    longitude = _parse_number(lon)
    result = await service.find_nearest(
        lat=math.nan if latitude is None else latitude,
        lon=math.nan if longitude is None else longitude,
        limit=_parse_number(limit),
    )

    response.headers["Cache-Control"] = "no-store"
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    return success_response(
        {
            "toilets": [toilet.model_dump() for toilet in result.toilets],
            "source": result.source.model_dump(),
        },
        meta={"count": len(result.toilets), "query": result.query.model_dump()},
    )
