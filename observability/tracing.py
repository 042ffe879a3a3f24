"""
OTEL tracing setup for the relay service, exported to Honeycomb.
Honeycomb accepts OTLP over HTTP/protobuf at /v1/traces; auth is the
x-honeycomb-team header carrying the same write key the relay forwards with.
"""
import os
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
import logging

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.honeycomb.io"

_tracer_provider: Optional[TracerProvider] = None


def setup_tracing(
    service_name: str,
    api_key: Optional[str] = None,
    dataset: Optional[str] = None,
    api_url: Optional[str] = None,
) -> TracerProvider:
    """
    Configure OTEL tracing to export relay spans to Honeycomb.

    Without a write key the spans go to the console, which keeps local
    development working with no account.
    """
    global _tracer_provider

    host = api_url or os.environ.get("HONEYCOMB_API_URL", DEFAULT_API_URL)
    key = api_key if api_key is not None else os.environ.get("HONEYCOMB_API_KEY", "")
    ds = dataset if dataset is not None else os.environ.get("HONEYCOMB_TRACES_DATASET", "")

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if key:
        endpoint = f"{host.rstrip('/')}/v1/traces"
        headers = {"x-honeycomb-team": key}
        if ds:
            headers["x-honeycomb-dataset"] = ds

        exporter = OTLPSpanExporter(endpoint=endpoint, headers=headers)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info(f"Honeycomb OTEL tracing configured: {endpoint}")
    else:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.warning("No Honeycomb write key found, using console span exporter")

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer. Call setup_tracing() first."""
    return trace.get_tracer(name)


def shutdown_tracing() -> None:
    """Flush and shutdown the tracer provider."""
    global _tracer_provider
    if _tracer_provider:
        _tracer_provider.shutdown()
        _tracer_provider = None
