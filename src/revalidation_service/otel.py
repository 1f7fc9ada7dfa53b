"""Optional OpenTelemetry tracing.

Enabled only when ``otel_exporter_endpoint`` is configured: installs a
TracerProvider with the OTLP HTTP exporter and instruments the aiohttp server
so every webhook delivery gets a span.
"""
from __future__ import annotations

import structlog
from aiohttp import web
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.aiohttp_server import middleware as otel_middleware
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from revalidation_service.settings import Settings

logger = structlog.get_logger(__name__)

_PROVIDER_KEY = "otel_tracer_provider"


def setup_otel(app: web.Application, settings: Settings) -> bool:
    """Returns whether tracing was enabled."""
    endpoint = settings.otel_exporter_endpoint
    if not endpoint:
        logger.info("otel_exporter_endpoint not set, OpenTelemetry tracing disabled")
        return False

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: settings.app_name}))
    exporter = OTLPSpanExporter(endpoint=f"{str(endpoint).rstrip('/')}/v1/traces")
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    app.middlewares.append(otel_middleware)

    app[_PROVIDER_KEY] = provider
    app.on_cleanup.append(_shutdown_otel)
    logger.info("OpenTelemetry tracing enabled", endpoint=str(endpoint), service=settings.app_name)
    return True


async def _shutdown_otel(app: web.Application) -> None:
    provider = app.get(_PROVIDER_KEY)
    if provider is not None:
        provider.shutdown()
        logger.info("OpenTelemetry tracer provider shut down")
