"""OpenTelemetry wiring for the LinkSync service."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from linksync import config

logger = logging.getLogger("linksync.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_reference_sync_counter: Any | None = None
_cache_lookup_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _reference_sync_counter, _cache_lookup_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (LINKSYNC_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "linksync"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "linksync",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("linksync")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("linksync")

    _reference_sync_counter = meter.create_counter(
        "linksync_reference_sync_total",
        unit="1",
        description="Task references processed, by outcome",
    )
    _cache_lookup_counter = meter.create_counter(
        "linksync_cache_lookups_total",
        unit="1",
        description="Record cache lookups, by record class and hit/miss",
    )

    _fastapi_instrumentor = FastAPIInstrumentor()
    if app is not None:
        _fastapi_instrumentor.instrument_app(app)

    _tracer = tracer
    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _enabled = True

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    steps = []
    if app and _fastapi_instrumentor:
        steps.append(lambda: _fastapi_instrumentor.uninstrument_app(app))
    for provider in (_meter_provider, _trace_provider):
        if provider is not None:
            steps.append(provider.shutdown)
    for step in steps:
        try:
            step()
        except Exception as exc:
            logger.warning("OpenTelemetry shutdown step failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_reference_sync(outcome: str) -> None:
    if _enabled and _reference_sync_counter is not None:
        _reference_sync_counter.add(1, {"outcome": outcome or "unknown"})


def record_cache_lookup(record: str, result: str) -> None:
    if _enabled and _cache_lookup_counter is not None:
        _cache_lookup_counter.add(1, {"record": record or "unknown", "result": result or "unknown"})
