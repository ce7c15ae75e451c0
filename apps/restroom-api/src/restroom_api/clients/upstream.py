from __future__ import annotations

import httpx

from restroom_api.errors import UpstreamUnavailableError

USER_AGENT = "HowFarFromPotty/1.0"


async def get_or_raise(
    client: httpx.AsyncClient,
    url: str,
    provider: str,
    failure_message: str,
    params: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    request_headers = {"User-Agent": USER_AGENT}
    if headers:
        request_headers.update(headers)
    try:
        response = await client.get(url, params=params, headers=request_headers)
        response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise UpstreamUnavailableError(provider, f"{failure_message} (timeout)", status_code=504) from exc
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise UpstreamUnavailableError(provider, f"{failure_message} ({status})", upstream_status=status) from exc
    except httpx.HTTPError as exc:
        raise UpstreamUnavailableError(provider, failure_message) from exc
    return response
