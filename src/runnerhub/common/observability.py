"""Logging and tracing setup shared by the runnerhub API and CLI."""

from __future__ import annotations

import logging
from typing import Optional

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "plain": structlog.dev.ConsoleRenderer,
}

_tracer_configured = False


def configure_logging(service_name: str, level: str = "WARNING", log_format: str = "json") -> None:
    """Route structlog through stdlib ``logging`` on stderr.

    ``log_format`` is ``json`` (one object per line) or ``plain`` (console output).
    """

    numeric_level = logging.getLevelNamesMapping()[level.strip().upper()]
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(numeric_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.dict_tracebacks,
            _RENDERERS[log_format](),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)


def parse_otlp_headers(headers: Optional[str]) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` exporter headers, skipping malformed items."""

    parsed: dict[str, str] = {}
    for item in (headers or "").split(","):
        key, _, value = item.partition("=")
        if key.strip() and value.strip():
            parsed[key.strip()] = value.strip()
    return parsed


def configure_tracing(
    service_name: str,
    endpoint: Optional[str] = None,
    headers: Optional[str] = None,
    sampler_ratio: float = 1.0,
) -> None:
    """Install the global tracer provider once per process.

    Spans go to the OTLP endpoint when one is set and stay in memory otherwise.
    """

    global _tracer_configured
    if _tracer_configured:
        return

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name}),
        sampler=TraceIdRatioBased(min(max(sampler_ratio, 0.0), 1.0)),
    )
    if endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=parse_otlp_headers(headers)))
        )
    else:
        provider.add_span_processor(SimpleSpanProcessor(InMemorySpanExporter()))
    trace.set_tracer_provider(provider)
    _tracer_configured = True


def instrument_fastapi_app(app) -> None:
    FastAPIInstrumentor.instrument_app(app, tracer_provider=trace.get_tracer_provider())
