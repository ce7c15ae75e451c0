"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings, load_settings
from devkit.observability import (
    ProbeAccessLogFilter,
    configure_logging,
    configure_otel,
    configure_probe_access_log_filter,
)

__all__ = [
    "ProbeAccessLogFilter",
    "ServiceSettings",
    "configure_logging",
    "configure_otel",
    "configure_probe_access_log_filter",
    "load_settings",
]
