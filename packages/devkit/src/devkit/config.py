from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "service"
    LOG_LEVEL: str = "INFO"
    REDIS_URL: str | None = None
    UK_DATASET_PAGE_URL: str = "https://www.toiletmap.org.uk/dataset"
    US_API_BASE_URL: str = "https://www.refugerestrooms.org/api/v1"
    DATASET_CACHE_TTL_SECONDS: int = 6 * 60 * 60
    DATASET_FAILURE_BACKOFF_SECONDS: int = 0
    UPSTREAM_TIMEOUT_SECONDS: float = 20.0
    PROXIMITY_PAGE_SIZE: int = 100
    PROXIMITY_MAX_PAGES: int = 4
    RATE_LIMIT_PER_MINUTE: int = 100


def load_settings(service_name: str) -> ServiceSettings:
    return ServiceSettings(SERVICE_NAME=service_name)
