# taskhub/core/tracing.py - Structured logging with per-request trace context

import os
import socket
import traceback
import sys
import json
import random
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from loguru import logger
from contextvars import ContextVar

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from taskhub.core.config import settings

SERVICE = "taskhub-api"
VERSION = "1.0.0"

# Context variables for manual trace propagation
_trace_id_context: ContextVar[str] = ContextVar('trace_id', default='no-trace')
_span_id_context: ContextVar[str] = ContextVar('span_id', default='no-span')

_tracer = None
_tracer_provider = None


def generate_trace_id() -> str:
    """Generate a 128-bit trace ID as 32-character hex string"""
    return f"{random.getrandbits(128):032x}"


def generate_span_id() -> str:
    """Generate a 64-bit span ID as 16-character hex string"""
    return f"{random.getrandbits(64):016x}"


class TracingMiddleware:
    """ASGI middleware that gives every HTTP request a trace context.

    Uses the active OpenTelemetry span when instrumentation is on, otherwise
    generates local ids. The trace id is echoed back as ``X-Trace-ID``.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace_id, span_id = None, None
        current_span = trace.get_current_span()
        span_context = current_span.get_span_context() if current_span else None
        if span_context is not None and span_context.trace_id != 0:
            trace_id = f"{span_context.trace_id:032x}"
            span_id = f"{span_context.span_id:016x}"
        else:
            trace_id = generate_trace_id()
            span_id = generate_span_id()

        _trace_id_context.set(trace_id)
        _span_id_context.set(span_id)

        async def send_with_trace_header(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-trace-id", trace_id.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_trace_header)


def setup_tracing(app, db_engine=None) -> bool:
    """Setup logging and tracing.

    Local trace ids are always available; OpenTelemetry export is layered on
    top when ENABLE_OTEL_EXPORTER is set. Returns True when OpenTelemetry
    instrumentation is active.
    """
    global _tracer, _tracer_provider

    app.add_middleware(TracingMiddleware)
    setup_structured_logging(enable_json=settings.should_use_json_logging)

    setup_logger = logger.bind(trace_id=generate_trace_id(), span_id=generate_span_id())

    if not settings.ENABLE_OTEL_EXPORTER:
        setup_logger.info("OpenTelemetry disabled in config - using local trace IDs only")
        return False

    try:
        resource = Resource.create({
            SERVICE_NAME: SERVICE,
            "service.version": VERSION,
            "service.environment": settings.ENVIRONMENT,
        })
        _tracer_provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)
        trace.set_tracer_provider(_tracer_provider)
        _tracer = trace.get_tracer(__name__)

        if settings.ENABLE_OTEL_CONSOLE_EXPORT:
            _tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
            setup_logger.info("Console span exporter enabled")

        if settings.ENABLE_EXTERNAL_TRACING:
            otlp_exporter = OTLPSpanExporter(endpoint=settings.OTLP_ENDPOINT, insecure=True)
            _tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            setup_logger.info(f"OTLP exporter enabled: {settings.OTLP_ENDPOINT}")

        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=_tracer_provider,
            excluded_urls="/health,/metrics,/docs,/redoc,/openapi.json"
        )
        setup_logger.info("FastAPI instrumented")

        if db_engine is not None:
            instrument_database(db_engine)

        setup_logger.info("OpenTelemetry tracing setup complete")
        return True

    except Exception as e:
        setup_logger.exception(f"OpenTelemetry setup failed, falling back to local trace IDs: {e}")
        return False


def utc_timestamp() -> str:
    """ISO 8601 UTC time with a trailing Z"""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def format_stack_trace(exception_info) -> Optional[str]:
    """Format a loguru exception record for the JSON sink"""
    if not exception_info or not exception_info.traceback:
        return None
    return ''.join(traceback.format_exception(
        exception_info.type,
        exception_info.value,
        exception_info.traceback
    ))


def setup_structured_logging(enable_json: bool = None):
    """Replace loguru's default sink with a JSON or human-readable one"""
    if enable_json is None:
        enable_json = settings.should_use_json_logging

    logger.remove()

    hostname = socket.gethostname()
    pid = os.getpid()
    environment = settings.ENVIRONMENT

    if enable_json:
        def json_sink(message):
            record = message.record
            extra = record["extra"]
            trace_id = extra.get("trace_id") or _trace_id_context.get()
            span_id = extra.get("span_id") or _span_id_context.get()

            log_entry: Dict[str, Any] = {
                "@timestamp": utc_timestamp(),
                "level": record["level"].name,
                "message": record["message"],
                "service": {"name": SERVICE, "version": VERSION, "environment": environment},
                "host": {"hostname": hostname},
                "process": {"pid": pid},
                "log": {
                    "logger": record["name"],
                    "function": record["function"],
                    "line": record["line"],
                },
                "trace": {"id": trace_id, "span_id": span_id},
            }

            custom = {k: v for k, v in extra.items() if k not in ("trace_id", "span_id")}
            if custom:
                log_entry["custom"] = custom

            if record["exception"]:
                exc = record["exception"]
                log_entry["error"] = {
                    "type": exc.type.__name__ if exc.type else "UnknownError",
                    "message": str(exc.value),
                    "stack_trace": format_stack_trace(exc),
                }

            sys.stderr.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
            sys.stderr.flush()

        logger.add(json_sink, level=settings.LOG_LEVEL, enqueue=True, catch=True)
    else:
        def format_with_trace(record):
            trace_id = record["extra"].get("trace_id") or _trace_id_context.get()
            trace_info = f" [trace:{trace_id[:8]}]" if trace_id != "no-trace" else ""
            return (
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
                "<cyan>{name}:{function}:{line}</cyan>" + trace_info + " - <level>{message}</level>\n{exception}"
            )

        logger.add(
            sys.stderr,
            format=format_with_trace,
            level=settings.LOG_LEVEL,
            colorize=True,
            enqueue=True,
            catch=True
        )


def instrument_database(db_engine) -> bool:
    """Add SQLAlchemy instrumentation to the async engine's sync core"""
    if _tracer_provider is None:
        return False

    try:
        SQLAlchemyInstrumentor().instrument(
            engine=getattr(db_engine, 'sync_engine', db_engine),
            tracer_provider=_tracer_provider,
            enable_commenter=True
        )
        info("SQLAlchemy instrumented")
        return True
    except Exception as e:
        warning(f"SQLAlchemy instrumentation failed: {e}")
        return False


def get_current_trace_span_ids() -> tuple[str, str]:
    """Current trace and span id, generating local ones outside a request"""
    trace_id = _trace_id_context.get()
    span_id = _span_id_context.get()
    if trace_id == "no-trace":
        trace_id, span_id = generate_trace_id(), generate_span_id()
        _trace_id_context.set(trace_id)
        _span_id_context.set(span_id)
    return trace_id, span_id


def get_current_trace_id() -> str:
    trace_id, _ = get_current_trace_span_ids()
    return trace_id


def log_with_trace(level: str, message: str, **kwargs):
    """Log through loguru with the current trace context bound"""
    trace_id, span_id = get_current_trace_span_ids()
    getattr(logger.bind(trace_id=trace_id, span_id=span_id, **kwargs), level)(message)


def info(message: str, **kwargs):
    log_with_trace("info", message, **kwargs)


def debug(message: str, **kwargs):
    log_with_trace("debug", message, **kwargs)


def warning(message: str, **kwargs):
    log_with_trace("warning", message, **kwargs)


def error(message: str, **kwargs):
    log_with_trace("error", message, **kwargs)


def exception(message: str, exc: Optional[BaseException] = None, **kwargs):
    """Log at error level with a traceback, from ``exc`` or the exception being handled"""
    trace_id, span_id = get_current_trace_span_ids()
    logger.bind(trace_id=trace_id, span_id=span_id, **kwargs).opt(exception=exc or True).error(message)


__all__ = [
    'setup_tracing', 'get_current_trace_span_ids', 'get_current_trace_id',
    'log_with_trace', 'info', 'debug', 'warning', 'error', 'exception'
]
