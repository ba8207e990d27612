"""
OpenTelemetry tracing for the storefront service.

Page requests and the catalog and store API calls they trigger end up in one
trace. Health, metrics and static file requests are not traced.
"""

import os
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .logging_config import get_logger

logger = get_logger(__name__)

UNTRACED_PATHS = "/health,/metrics,/static"


def setup_tracing(
    app: FastAPI,
    service_name: str,
    service_version: str,
    otlp_endpoint: Optional[str] = None,
) -> TracerProvider:
    """
    Export spans over OTLP for incoming requests and outgoing httpx calls.

    Args:
        app: Application whose routes are traced
        service_name: ``service.name`` resource attribute
        service_version: ``service.version`` resource attribute
        otlp_endpoint: Collector address, ``OTEL_EXPORTER_OTLP_ENDPOINT`` when omitted

    Returns:
        The tracer provider installed as global
    """
    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "localhost:4317")

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: service_name,
                SERVICE_VERSION: service_version,
                "deployment.environment": os.getenv("ENVIRONMENT", "development"),
            }
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)

    # Upstream calls become child spans of the page request that made them
    HTTPXClientInstrumentor().instrument(tracer_provider=provider)
    FastAPIInstrumentor.instrument_app(
        app, excluded_urls=UNTRACED_PATHS, tracer_provider=provider
    )

    logger.info(
        "Tracing enabled",
        extra={"extra_fields": {"otlp_endpoint": endpoint, "untraced": UNTRACED_PATHS}},
    )
    return provider
