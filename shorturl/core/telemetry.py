"""OpenTelemetry instrumentation for the URL shortener service."""

import logging
from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as OTLPGrpcSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as OTLPHttpSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBasedTraceIdRatio

from shorturl.core.config import Settings

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "shorturl"

_tracer_provider: Optional[TracerProvider] = None


def setup_telemetry(settings: Settings) -> Optional[TracerProvider]:
    """Initialize OpenTelemetry tracing.

    When telemetry is disabled the global no-op providers stay in place, so
    `get_tracer` and `get_meter` remain safe to call everywhere.

    Args:
        settings: Settings to configure from

    Returns:
        The installed tracer provider, or None when disabled
    """
    global _tracer_provider

    if not settings.OTEL_ENABLED:
        logger.info("OpenTelemetry instrumentation is disabled")
        return None

    if _tracer_provider is not None:
        return _tracer_provider

    resource = Resource.create({
        "service.name": settings.OTEL_SERVICE_NAME,
        "service.version": settings.APP_VERSION,
        "deployment.environment": settings.ENVIRONMENT.value,
    })

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBasedTraceIdRatio(settings.OTEL_TRACES_SAMPLER_ARG),
    )

    if settings.OTEL_EXPORTER_OTLP_PROTOCOL.lower() == "grpc":
        exporter = OTLPGrpcSpanExporter(
            endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
    else:
        exporter = OTLPHttpSpanExporter(
            endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT
        )

    tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(tracer_provider)
    _tracer_provider = tracer_provider
    logger.info(f"OpenTelemetry tracer configured with {settings.OTEL_EXPORTER_OTLP_PROTOCOL} exporter")

    return tracer_provider


def instrument_app(app, settings: Settings) -> None:
    """Instrument the FastAPI application when telemetry is enabled."""
    if not settings.OTEL_ENABLED:
        return
    FastAPIInstrumentor.instrument_app(app, tracer_provider=trace.get_tracer_provider())
    logger.info("FastAPI instrumentation enabled")


def shutdown_telemetry() -> None:
    """Flush and shut down the tracer provider, if one was installed."""
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str = INSTRUMENTATION_NAME) -> trace.Tracer:
    """Get a tracer for creating spans."""
    return trace.get_tracer(name)


def get_meter(name: str = INSTRUMENTATION_NAME) -> metrics.Meter:
    """Get a meter for creating metrics."""
    return metrics.get_meter(name)
