"""OpenTelemetry tracing for the API and the inbound consumer worker.

Both processes export to the same OTLP endpoint under one service name and
are told apart by the `service.instance.role` resource attribute. Services
open manual spans through `get_tracer`; they are no-ops until a provider is
configured.
"""

import importlib
import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from cs_automation.config import settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Health checks, docs and the long-lived live update sockets are not traced
UNTRACED_URLS = "health,api/docs,api/redoc,api/openapi.json,api/v1/live"

# (module, instrumentor class) for the clients the services talk through:
# the WhatsApp gateway, the conversation store, the inbound queue and the
# live update bus
CLIENT_INSTRUMENTORS = (
    ("opentelemetry.instrumentation.httpx", "HTTPXClientInstrumentor"),
    ("opentelemetry.instrumentation.sqlalchemy", "SQLAlchemyInstrumentor"),
    ("opentelemetry.instrumentation.aio_pika", "AioPikaInstrumentor"),
    ("opentelemetry.instrumentation.redis", "RedisInstrumentor"),
)


def configure_tracing(role: str) -> TracerProvider | None:
    """Install a global TracerProvider exporting over OTLP.

    Returns None, leaving tracing as a no-op, when no endpoint is configured
    or the exporter cannot be built.
    """
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("Telemetry disabled: OTEL_EXPORTER_OTLP_ENDPOINT not configured")
        return None

    try:
        resource = Resource.create(
            {
                "service.name": settings.OTEL_SERVICE_NAME,
                "service.instance.role": role,
                "deployment.environment": "development" if settings.DEBUG else "production",
            }
        )
        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True)
            )
        )
    except Exception as e:
        logger.warning(f"Failed to setup telemetry: {e}")
        return None

    trace.set_tracer_provider(tracer_provider)
    logger.info(f"Telemetry enabled for {role}: exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
    return tracer_provider


def instrument_clients() -> list[str]:
    """Instrument every client library whose instrumentation is installed.

    Returns the names of the instrumentors that were enabled.
    """
    enabled = []
    for module_name, class_name in CLIENT_INSTRUMENTORS:
        try:
            instrumentor = getattr(importlib.import_module(module_name), class_name)
        except ImportError:
            logger.debug(f"{class_name} not available")
            continue

        instrumentor().instrument()
        enabled.append(class_name)

    logger.info(f"Client instrumentation enabled: {', '.join(enabled) or 'none'}")
    return enabled


def setup_telemetry(app: "FastAPI") -> None:
    """Trace incoming API requests and the clients they use."""
    tracer_provider = configure_tracing("api")
    if tracer_provider is None:
        return

    FastAPIInstrumentor.instrument_app(
        app, tracer_provider=tracer_provider, excluded_urls=UNTRACED_URLS
    )
    instrument_clients()


def setup_worker_telemetry() -> None:
    """Trace the inbound consumer: queue deliveries and what handling them touches."""
    if configure_tracing("consumer") is not None:
        instrument_clients()


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for manual spans around rule evaluation, sync and dispatch.

    Example:
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span("rules.evaluate") as span:
            span.set_attribute("rules.count", 3)
    """
    return trace.get_tracer(name)
