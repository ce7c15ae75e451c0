from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int

    def __str__(self) -> str:
        return self.message


class RestroomLookupError(ApiError):
    """Base for failures of a nearest-restroom lookup."""


class InvalidCoordinatesError(RestroomLookupError):
    def __init__(self, message: str = "Please provide numeric lat and lon query parameters.") -> None:
        super().__init__("INVALID_COORDINATES", message, 400)


class UnsupportedRegionError(RestroomLookupError):
    def __init__(self, message: str = "This app currently supports UK and US locations only.") -> None:
        super().__init__("OUTSIDE_SUPPORTED_REGIONS", message, 400)


class UpstreamUnavailableError(RestroomLookupError):
    def __init__(
        self,
        provider: str,
        message: str,
        upstream_status: int | None = None,
        status_code: int = 502,
    ) -> None:
        super().__init__("UPSTREAM_UNAVAILABLE", message, status_code)
        self.provider = provider
        self.upstream_status = upstream_status


class RateLimitExceededError(ApiError):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__("RATE_LIMIT_EXCEEDED", "Too many requests", 429)
        self.retry_after_seconds = retry_after_seconds
