"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from kontext.shared.telemetry.logging import RequestIDLogFilter, setup_logging
from kontext.shared.telemetry.telemetry import TelemetryConfig, get_telemetry, set_telemetry
from kontext.shared.telemetry.tracing import add_span_attributes, set_span_error, traced

__all__ = [
    "setup_logging",
    "RequestIDLogFilter",
    "TelemetryConfig",
    "get_telemetry",
    "set_telemetry",
    "traced",
    "add_span_attributes",
    "set_span_error",
]
