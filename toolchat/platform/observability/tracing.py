"""OpenTelemetry tracing setup.

Spans are exported over OTLP/gRPC to the configured collector. LangChain
calls are traced through OpenInference and log records carry trace ids.
"""

from openinference.instrumentation.langchain import LangChainInstrumentor
from openinference.semconv.resource import ResourceAttributes
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME as RESOURCE_SERVICE_NAME
from opentelemetry.sdk.resources import SERVICE_VERSION as RESOURCE_SERVICE_VERSION
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from toolchat.platform.constants import SERVICE_NAME, SERVICE_VERSION


def initialize_tracing(endpoint: str) -> TracerProvider:
    """Install a global tracer provider exporting to an OTLP collector.

    Args:
        endpoint: Collector gRPC endpoint, e.g. http://otel-collector:4317

    Returns:
        The installed provider, for shutdown
    """
    resource = Resource.create(
        {
            RESOURCE_SERVICE_NAME: SERVICE_NAME,
            RESOURCE_SERVICE_VERSION: SERVICE_VERSION,
            ResourceAttributes.PROJECT_NAME: SERVICE_NAME,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    trace.set_tracer_provider(provider)

    LoggingInstrumentor().instrument(set_logging_format=True)
    LangChainInstrumentor().instrument(tracer_provider=provider)
    return provider
