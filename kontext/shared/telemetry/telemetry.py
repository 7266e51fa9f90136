"""OpenTelemetry setup for the proxy service.

Spans cover inbound requests (FastAPI), calls to the record backend (httpx)
and the response cache (Redis). Exporters: "otlp" for a collector, "console"
for development, "none" to trace without exporting.
"""

from __future__ import annotations

import logging
import threading

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from kontext.core.config import Settings

logger = logging.getLogger(__name__)

# Probes and long-lived sockets would flood the trace backend.
_UNTRACED_URLS = "/api/v1/health,/api/v1/ws/"


class TelemetryConfig:
    """Tracer provider and instrumentation for one process."""

    def __init__(
        self,
        service_name: str,
        service_version: str,
        environment: str = "development",
        exporter: str = "console",
        otlp_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.environment = environment
        self.exporter = exporter
        self.otlp_endpoint = otlp_endpoint
        self.sample_rate = sample_rate
        self.tracer_provider: TracerProvider | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> TelemetryConfig:
        return cls(
            service_name=settings.app_name,
            service_version=settings.app_version,
            environment=settings.telemetry_environment,
            exporter=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )

    def _span_exporter(self) -> SpanExporter | None:
        if self.exporter == "none":
            return None
        if self.exporter == "otlp":
            if self.otlp_endpoint:
                return OTLPSpanExporter(endpoint=self.otlp_endpoint, insecure=self.otlp_endpoint.startswith("http://"))
            logger.warning("OTLP exporter selected without an endpoint; using console")
        elif self.exporter != "console":
            logger.warning("Unknown exporter type '%s', using console", self.exporter)
        return ConsoleSpanExporter()

    def setup(self) -> TracerProvider | None:
        """Create the tracer provider and install it globally.

        Returns:
            The provider, or None if setup failed (the service runs untraced).
        """
        resource = Resource(
            attributes={
                SERVICE_NAME: self.service_name,
                SERVICE_VERSION: self.service_version,
                "deployment.environment": self.environment,
            }
        )
        try:
            provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(self.sample_rate))
            exporter = self._span_exporter()
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
        except Exception:
            logger.exception("Failed to initialize telemetry; tracing disabled")
            return None
        trace.set_tracer_provider(provider)
        self.tracer_provider = provider
        logger.info("Tracing enabled: service=%s exporter=%s", self.service_name, self.exporter)
        return provider

    def instrument(self, app: FastAPI) -> None:
        """Instrument inbound requests, backend calls, Redis and log records."""
        if self.tracer_provider is None:
            return
        FastAPIInstrumentor.instrument_app(app, tracer_provider=self.tracer_provider, excluded_urls=_UNTRACED_URLS)
        HTTPXClientInstrumentor().instrument(tracer_provider=self.tracer_provider)
        RedisInstrumentor().instrument(tracer_provider=self.tracer_provider)
        LoggingInstrumentor().instrument(tracer_provider=self.tracer_provider, set_logging_format=False)

    def shutdown(self) -> None:
        """Flush pending spans."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception:
            logger.exception("Error during telemetry shutdown")


_telemetry: TelemetryConfig | None = None
_telemetry_lock = threading.RLock()


def get_telemetry() -> TelemetryConfig | None:
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: TelemetryConfig | None) -> None:
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry
