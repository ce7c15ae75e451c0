from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from geo_engine.models import GeoPoint

from restroom_api.clients.upstream import get_or_raise
from restroom_api.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

PROVIDER = "us"
API_BASE_URL = "https://www.refugerestrooms.org/api/v1"
DOCS_URL = "https://www.refugerestrooms.org/api/docs/#!/restrooms/get_api_v1_restrooms_by_location"


class RefugeRestroomsClient:
    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout_seconds: float = 20.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/restrooms/by_location"

    async def fetch_page(self, point: GeoPoint, page_size: int, offset: int) -> list[Any]:
        params: dict[str, object] = {
            "lat": point.lat,
            "lng": point.lng,
            "per_page": page_size,
            "offset": offset,
        }
        factory = self._client_factory or (
            lambda: httpx.AsyncClient(timeout=self._timeout_seconds, follow_redirects=True)
        )
        async with factory() as client:
            response = await get_or_raise(
                client,
                self.endpoint,
                PROVIDER,
                "US API request failed",
                params=params,
                headers={"Accept": "application/json"},
            )

        try:
            rows = response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError(PROVIDER, "US API response could not be decoded.") from exc
        if not isinstance(rows, list):
            logger.warning("proximity_page_not_a_list", extra={"provider": PROVIDER, "offset": offset})
            return []
        return rows
