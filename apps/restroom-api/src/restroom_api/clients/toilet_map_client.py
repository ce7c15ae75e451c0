from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

import httpx

from restroom_api.clients.upstream import get_or_raise
from restroom_api.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

PROVIDER = "uk"
DATASET_PAGE_URL = "https://www.toiletmap.org.uk/dataset"
DATASET_LINK_PATTERN = re.compile(r"https://[^\"'<>]+/exports/toilets-[^\"'<>]+\.json\?download=1")


def extract_export_url(page_html: str) -> str | None:
    match = DATASET_LINK_PATTERN.search(page_html)
    if match is None:
        return None
    return match.group(0).replace("&amp;", "&")


class ToiletMapClient:
    """Downloads the Great British Public Toilet Map JSON export.

    The export URL changes between releases, so it is scraped from the
    dataset page on every download.
    """

    def __init__(
        self,
        dataset_page_url: str = DATASET_PAGE_URL,
        timeout_seconds: float = 20.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._dataset_page_url = dataset_page_url
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    @property
    def dataset_page_url(self) -> str:
        return self._dataset_page_url

    async def fetch_dataset(self) -> tuple[str, list[Any]]:
        factory = self._client_factory or (
            lambda: httpx.AsyncClient(timeout=self._timeout_seconds, follow_redirects=True)
        )
        async with factory() as client:
            page_response = await get_or_raise(
                client, self._dataset_page_url, PROVIDER, "Dataset page request failed"
            )
            source_url = extract_export_url(page_response.text)
            if source_url is None:
                raise UpstreamUnavailableError(PROVIDER, "Unable to find a JSON export URL in the dataset page.")

            logger.info("dataset_export_resolved", extra={"provider": PROVIDER, "source_url": source_url})
            data_response = await get_or_raise(client, source_url, PROVIDER, "Dataset JSON request failed")

        try:
            rows = data_response.json()
        except ValueError as exc:
            raise UpstreamUnavailableError(PROVIDER, "Dataset JSON could not be decoded.") from exc
        if not isinstance(rows, list):
            raise UpstreamUnavailableError(PROVIDER, "Dataset JSON format was not an array.")
        return source_url, rows
