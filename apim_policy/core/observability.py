"""
Logging, correlation ids and Prometheus metrics for the compiler service.

Provides:
- JSON log lines that carry the correlation id of the current request
- HTTP and compiler collectors on a private Prometheus registry
- ObservabilityMiddleware, which ties both to every request

Compiler modules only call ``record_compiler_operation``; they know nothing
about the HTTP layer.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)
request_logger = logging.getLogger("apim_policy.request")

# ============================================================================
# Correlation ids
# ============================================================================

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Correlation id of the request being handled, or "" outside a request."""
    return _correlation_id.get()


def set_correlation_id(request_id: str) -> None:
    _correlation_id.set(request_id)


# ============================================================================
# JSON logging
# ============================================================================

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """
    Render each record as one JSON object.

    Fields passed with ``extra=`` are nested under ``"extra"`` so they can
    never overwrite the fixed keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {"type": exc_type.__name__, "message": str(exc_value)}

        extra = {
            key: value for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """
    Send all logging through a single JSON handler on stderr.

    Args:
        level: Root log level name; unknown names fall back to INFO
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))


# ============================================================================
# Metrics
# ============================================================================

_registry = CollectorRegistry()


class Metrics:
    """
    Prometheus collectors for the service.

    HTTP collectors are labelled with the route template
    (``/api/v1/catalog/{policy_id}``), never the raw path, so label sets stay
    bounded. Requests that match no route share the ``unmatched`` label.
    """

    LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
    # Generating or parsing one document normally takes well under a millisecond
    COMPILER_BUCKETS = (0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0)
    DOCUMENT_BUCKETS = (256, 1024, 4096, 16384, 65536, 262144, 1048576)

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        self.http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests handled, by route template and status",
            ["method", "route", "status_code"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request handling time",
            ["method", "route"],
            buckets=self.LATENCY_BUCKETS,
            registry=registry,
        )
        self.http_requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests being handled",
            ["method"],
            registry=registry,
        )

        # operation: generate | parse | validate
        self.compiler_operations_total = Counter(
            "policy_compiler_operations_total",
            "Policy compiler operations, by outcome",
            ["operation", "status"],
            registry=registry,
        )
        self.compiler_duration_seconds = Histogram(
            "policy_compiler_duration_seconds",
            "Policy compiler operation time",
            ["operation"],
            buckets=self.COMPILER_BUCKETS,
            registry=registry,
        )
        self.compiler_document_bytes = Histogram(
            "policy_compiler_document_bytes",
            "Size of generated or parsed policy XML",
            ["operation"],
            buckets=self.DOCUMENT_BUCKETS,
            registry=registry,
        )


metrics = Metrics(_registry)


def record_compiler_operation(
    operation: str, status: str, duration: float, document_bytes: int = 0
) -> None:
    """
    Record one compiler operation.

    Metrics failures are logged at debug level and never reach the caller.

    Args:
        operation: "generate", "parse" or "validate"
        status: "success" or "error"
        duration: Operation time in seconds
        document_bytes: Size of the XML document involved, 0 when there is none
    """
    try:
        metrics.compiler_operations_total.labels(operation=operation, status=status).inc()
        metrics.compiler_duration_seconds.labels(operation=operation).observe(duration)
        if document_bytes:
            metrics.compiler_document_bytes.labels(operation=operation).observe(document_bytes)
    except Exception:
        logger.debug("Failed to record compiler metrics", exc_info=True)


def metrics_endpoint() -> Response:
    """Prometheus text exposition of the service registry."""
    return Response(content=generate_latest(_registry), media_type=CONTENT_TYPE_LATEST)


# ============================================================================
# Middleware
# ============================================================================


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def extract_request_context(request: Request) -> dict[str, Any]:
    """Request fields attached to error log records."""
    return {"request_id": get_request_id(), "method": request.method}


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Correlation id, access log and HTTP metrics for every request.

    The correlation id is taken from ``request_id_header`` when the caller
    sends one and generated otherwise; it is echoed on the response. Paths
    ending in one of ``skip_paths`` are measured but not access-logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        metrics_instance: Metrics | None = None,
        skip_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
    ) -> None:
        super().__init__(app)
        self.metrics = metrics_instance or metrics
        self.skip_paths = tuple(skip_paths or ("/health", "/readyz", "/metrics"))
        self.request_id_header = request_id_header

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.request_id_header) or generate_request_id()
        set_correlation_id(request_id)

        method = request.method
        status_code = 500
        started = time.perf_counter()
        self.metrics.http_requests_in_progress.labels(method=method).inc()

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[self.request_id_header] = request_id
            return response
        except Exception:
            request_logger.error(
                "%s %s raised", method, request.url.path, exc_info=True
            )
            raise
        finally:
            latency = time.perf_counter() - started
            route = _route_label(request)

            self.metrics.http_requests_in_progress.labels(method=method).dec()
            self.metrics.http_requests_total.labels(
                method=method, route=route, status_code=status_code
            ).inc()
            self.metrics.http_request_duration_seconds.labels(
                method=method, route=route
            ).observe(latency)

            if not request.url.path.endswith(self.skip_paths):
                request_logger.info(
                    "%s %s %d",
                    method,
                    request.url.path,
                    status_code,
                    extra={
                        "route": route,
                        "status_code": status_code,
                        "latency_ms": round(latency * 1000, 2),
                    },
                )
