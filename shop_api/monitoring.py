"""Monitoring and observability setup.

Tracer and meter providers are always installed so instruments can be
recorded unconditionally. The OTLP exporters are attached only when
``OTEL_ENABLED`` is set; otherwise spans and measurements stay in-process.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

from shop_api.config import OTEL_ENABLED, OTEL_EXPORTER_OTLP_ENDPOINT, SERVICE_NAME

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    if OTEL_ENABLED:
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")
    trace.set_tracer_provider(tracer_provider)

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    metric_readers = []
    if OTEL_ENABLED:
        otlp_metric_exporter = OTLPMetricExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        metric_readers.append(PeriodicExportingMetricReader(
            otlp_metric_exporter,
            export_interval_millis=5000
        ))

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=metric_readers
    )
    metrics.set_meter_provider(meter_provider)

    return metrics.get_meter(__name__)


# Initialize tracer and meter
tracer = init_tracing()
meter = init_metrics()

# Catalog metrics
product_views_counter = meter.create_counter(
    "shop.products.views",
    description="Total number of product catalog and detail views",
    unit="1"
)

# Cart metrics
cart_additions_counter = meter.create_counter(
    "shop.cart.additions",
    description="Total number of add-to-cart operations",
    unit="1"
)

# Order metrics
checkout_counter = meter.create_counter(
    "shop.checkouts",
    description="Total number of checkouts by outcome",
    unit="1"
)

checkout_amount_histogram = meter.create_histogram(
    "shop.checkout.amount",
    description="Checkout order total",
    unit="1"
)

# Security monitoring metrics
auth_attempts_counter = meter.create_counter(
    "shop.auth.attempts",
    description="Total number of login attempts",
    unit="1"
)

auth_failures_counter = meter.create_counter(
    "shop.auth.failures",
    description="Total number of authentication failures",
    unit="1"
)
