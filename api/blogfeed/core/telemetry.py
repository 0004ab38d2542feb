from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
import os
from typing import Any, Iterator
from urllib.parse import unquote, urlsplit

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import SpanKind, Status, StatusCode

from blogfeed.core.config import Settings

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"
PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_HTTPX = HTTPXClientInstrumentor()
_BASE_RECORD_FACTORY = logging.getLogRecordFactory()
_correlation_installed = False


@dataclass(slots=True)
class TelemetryRuntime:
    enabled: bool
    provider: TracerProvider | None


def configure_api_logging(settings: Settings) -> None:
    """Route stdlib logging through one handler that carries the active trace/span ids."""
    if settings.otel_log_correlation:
        _install_log_correlation()
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT if _correlation_installed else PLAIN_LOG_FORMAT))
    root.addHandler(handler)


def build_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            SERVICE_NAME: settings.otel_service_name,
            "service.namespace": "blogfeed",
            "deployment.environment": settings.environment,
            "blogfeed.external_api.host": urlsplit(settings.external_api_base_url).netloc,
            "blogfeed.store.configured": bool(settings.database_url),
        }
    )


def setup_api_telemetry(settings: Settings) -> TelemetryRuntime:
    if not settings.otel_enabled:
        return TelemetryRuntime(enabled=False, provider=None)

    provider = TracerProvider(
        resource=build_resource(settings),
        sampler=ParentBased(TraceIdRatioBased(settings.otel_trace_sample_ratio)),
    )
    exporter = _build_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    if not _HTTPX.is_instrumented_by_opentelemetry:
        _HTTPX.instrument(
            tracer_provider=provider,
            async_request_hook=outbound_request_hook(settings),
        )
    return TelemetryRuntime(enabled=True, provider=provider)


def shutdown_api_telemetry(runtime: TelemetryRuntime) -> None:
    if not runtime.enabled:
        return
    if _HTTPX.is_instrumented_by_opentelemetry:
        _HTTPX.uninstrument()
    if runtime.provider is not None:
        runtime.provider.force_flush()
        runtime.provider.shutdown()


def outbound_peer(url: Any, settings: Settings) -> str | None:
    """Name the upstream an outbound request is aimed at, if it is one we call."""
    host = urlsplit(str(url)).netloc
    if not host:
        return None
    if host == urlsplit(settings.external_api_base_url).netloc:
        return "external_content"
    if settings.supabase_url and host == urlsplit(settings.supabase_url).netloc:
        return "supabase_auth"
    return None


def outbound_request_hook(settings: Settings):
    async def hook(span: trace.Span, request: Any) -> None:
        if not span.is_recording():
            return
        peer = outbound_peer(request.url, settings)
        if peer is None:
            return
        method = request.method.decode() if isinstance(request.method, bytes) else str(request.method)
        span.update_name(f"{peer} {method} {urlsplit(str(request.url)).path or '/'}")
        span.set_attribute("blogfeed.upstream", peer)

    return hook


@contextmanager
def request_span(method: str, path: str) -> Iterator[trace.Span]:
    """Server span that parents the ``content.*`` and store spans of one request."""
    with tracer.start_as_current_span(
        f"{method} {path}",
        kind=SpanKind.SERVER,
    ) as span:
        span.set_attribute("http.request.method", method)
        span.set_attribute("url.path", path)
        yield span


def record_response(span: trace.Span, status_code: int) -> None:
    span.set_attribute("http.response.status_code", status_code)
    if status_code >= 500:
        span.set_status(Status(StatusCode.ERROR))


def parse_headers(raw: str | None) -> dict[str, str]:
    """Parse ``OTEL_EXPORTER_OTLP_HEADERS`` style ``k=v,k2=v2`` (values are percent-encoded)."""
    headers: dict[str, str] = {}
    for item in (raw or "").split(","):
        key, separator, value = item.partition("=")
        key = key.strip()
        if separator and key:
            headers[key] = unquote(value.strip())
    return headers


def _build_exporter(settings: Settings) -> OTLPSpanExporter | None:
    endpoint = (
        settings.otel_exporter_otlp_endpoint
        or os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
        or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    )
    if not endpoint:
        logger.info("no OTLP endpoint configured; blog feed spans stay in-process")
        return None
    headers = parse_headers(settings.otel_exporter_otlp_headers or os.getenv("OTEL_EXPORTER_OTLP_HEADERS"))
    return OTLPSpanExporter(endpoint=endpoint, headers=headers or None)


def _install_log_correlation() -> None:
    global _correlation_installed
    if _correlation_installed:
        return

    def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = _BASE_RECORD_FACTORY(*args, **kwargs)
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "-"
        record.span_id = format(context.span_id, "016x") if context.is_valid else "-"
        return record

    logging.setLogRecordFactory(record_factory)
    _correlation_installed = True
