from __future__ import annotations

import logging

from devkit.observability import KeyValueFormatter, ProbeAccessLogFilter


def _access_record(path: str, status: int) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:12345", "GET", path, "1.1", status),
        exc_info=None,
    )


def test_probe_access_log_filter_ignores_probe_200() -> None:
    probe_filter = ProbeAccessLogFilter()
    assert probe_filter.filter(_access_record("/healthz", 200)) is False
    assert probe_filter.filter(_access_record("/readyz/", 200)) is False


def test_probe_access_log_filter_keeps_lookups_and_failures() -> None:
    probe_filter = ProbeAccessLogFilter()
    assert probe_filter.filter(_access_record("/healthz", 503)) is True
    assert probe_filter.filter(_access_record("/api/nearest?lat=51.5&lon=-0.1", 200)) is True


def test_probe_access_log_filter_passes_records_of_other_shapes() -> None:
    probe_filter = ProbeAccessLogFilter(ignored_paths=["/healthz/"])
    record = logging.LogRecord(
        name="uvicorn.error",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Started server process [%d]",
        args=(4242,),
        exc_info=None,
    )

    assert probe_filter.filter(record) is True
    assert probe_filter.filter(_access_record("/healthz?verbose=1", 200)) is False
    assert probe_filter.filter(_access_record("/", 200)) is True


def test_key_value_formatter_renders_extra_fields() -> None:
    record = logging.LogRecord(
        name="restroom_api.cache",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="dataset_refresh_completed",
        args=(),
        exc_info=None,
    )
    record.record_count = 3
    record.provider = "uk"

    line = KeyValueFormatter().format(record)

    assert "dataset_refresh_completed" in line
    assert line.endswith("provider=uk record_count=3")


def test_key_value_formatter_without_extra_fields() -> None:
    record = logging.LogRecord(
        name="restroom_api",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="plain_event",
        args=(),
        exc_info=None,
    )

    line = KeyValueFormatter().format(record)

    assert line.endswith("WARNING restroom_api plain_event")
