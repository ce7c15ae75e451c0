from __future__ import annotations

import logging
import sys
from collections.abc import Iterable

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

_configured = False
_logging_configured = False
_probe_filter_configured = False

# attributes every LogRecord carries; anything else arrived through `extra=`
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class KeyValueFormatter(logging.Formatter):
    """Renders `extra={...}` fields after the event name as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_RECORD_ATTRS
        }
        if not fields:
            return line
        rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        return f"{line} {rendered}"


PROBE_PATHS = ("/healthz", "/readyz")


def _route_of(path: str) -> str:
    route = path.partition("?")[0].rstrip("/")
    return route or "/"


class ProbeAccessLogFilter(logging.Filter):
    """Drops uvicorn access lines for successful health and readiness probes."""

    def __init__(self, ignored_paths: Iterable[str] = PROBE_PATHS) -> None:
        super().__init__()
        self._ignored_routes = frozenset(_route_of(path) for path in ignored_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn.access args: (client_addr, method, full_path, http_version, status_code)
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5:
            return True
        path, status_code = args[2], args[4]
        if not isinstance(path, str) or str(status_code) != "200":
            return True
        return _route_of(path) not in self._ignored_routes


def configure_logging(level: str = "INFO") -> None:
    global _logging_configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _logging_configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KeyValueFormatter())
    root.addHandler(handler)
    _logging_configured = True


def configure_otel(service_name: str) -> None:
    global _configured
    if _configured:
        return
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _configured = True


def configure_probe_access_log_filter(ignored_paths: Iterable[str] = PROBE_PATHS) -> None:
    global _probe_filter_configured
    if _probe_filter_configured:
        return
    logging.getLogger("uvicorn.access").addFilter(ProbeAccessLogFilter(ignored_paths))
    _probe_filter_configured = True
