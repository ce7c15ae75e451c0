from devkit.config import load_settings


def test_load_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://example:6379/0")
    monkeypatch.setenv("DATASET_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "7.5")
    settings = load_settings("restroom-api")

    assert settings.SERVICE_NAME == "restroom-api"
    assert settings.REDIS_URL == "redis://example:6379/0"
    assert settings.DATASET_CACHE_TTL_SECONDS == 60
    assert settings.UPSTREAM_TIMEOUT_SECONDS == 7.5


def test_load_settings_defaults(monkeypatch) -> None:
    for name in ("DATASET_CACHE_TTL_SECONDS", "DATASET_FAILURE_BACKOFF_SECONDS", "PROXIMITY_MAX_PAGES"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings("restroom-api")

    assert settings.DATASET_CACHE_TTL_SECONDS == 21600
    assert settings.DATASET_FAILURE_BACKOFF_SECONDS == 0
    assert settings.PROXIMITY_MAX_PAGES == 4
    assert settings.UK_DATASET_PAGE_URL == "https://www.toiletmap.org.uk/dataset"
