"""
FastAPI application for the policy document compiler.

Every error leaves the service with the same body shape:
``{"error": <class name>, "message": ..., "details": {...}}``.
"""

import hmac
import logging
import re
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from apim_policy import __version__
from apim_policy.api.routes.catalog import router as catalog_router
from apim_policy.api.routes.health import router as health_router
from apim_policy.api.routes.policies import router as policies_router
from apim_policy.api.routes.wizard import router as wizard_router
from apim_policy.core.config import AppEnvironment, settings
from apim_policy.core.errors import PolicyCompilerError, get_status_code
from apim_policy.core.middleware import RequestSizeLimitMiddleware
from apim_policy.core.observability import (
    ObservabilityMiddleware,
    configure_structured_logging,
    extract_request_context,
    metrics_endpoint,
)

if settings.observability_structured_logs:
    configure_structured_logging(settings.app_log_level)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
METRICS_TOKEN_HEADER = "X-Metrics-Token"

# Source file paths can appear in parser error details
_FILE_PATH = re.compile(r"[/\\][\w/-]+\.py")


def _sanitize_error_details(details: dict[str, Any]) -> dict[str, Any]:
    """Redact file paths from error details when running in production."""
    if settings.app_env != AppEnvironment.PROD:
        return details

    def clean(value: Any) -> Any:
        if isinstance(value, dict):
            return {key: clean(item) for key, item in value.items()}
        if isinstance(value, str) and _FILE_PATH.search(value):
            return "[REDACTED]"
        return value

    return clean(details)


def _error_response(
    status_code: int,
    error: str,
    message: Any,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details or {}},
        headers=headers,
    )


def _log_context(request: Request, **fields: Any) -> dict[str, Any]:
    return {"path": request.url.path, **extract_request_context(request), **fields}


# ============================================================================
# Exception handlers
# ============================================================================


async def handle_policy_compiler_error(
    request: Request, exc: PolicyCompilerError
) -> JSONResponse:
    status_code = get_status_code(exc)
    name = exc.__class__.__name__

    level = logging.ERROR if status_code >= 500 else logging.WARNING
    logger.log(level, "%s: %s", name, exc.message, extra=_log_context(request, details=exc.details))

    return _error_response(status_code, name, exc.message, _sanitize_error_details(exc.details))


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %d: %s", exc.status_code, exc.detail, extra=_log_context(request))

    return _error_response(exc.status_code, "HTTPException", exc.detail, headers=exc.headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Log the full traceback; the client only learns that something failed."""
    logger.error("Unhandled exception: %s", exc, exc_info=True, extra=_log_context(request))

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )


# ============================================================================
# Metrics
# ============================================================================


async def protected_metrics(request: Request) -> Response:
    """
    Prometheus scrape endpoint.

    The caller must send METRICS_TOKEN in the X-Metrics-Token header. With no
    token configured the endpoint refuses every request.
    """
    expected = settings.metrics_token
    if not expected:
        logger.error(
            "Metrics endpoint called without METRICS_TOKEN configured",
            extra={"security_event": True, "event_type": "METRICS_NOT_CONFIGURED"},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Metrics token not configured. Set METRICS_TOKEN environment variable.",
        )

    supplied = request.headers.get(METRICS_TOKEN_HEADER) or ""
    if not hmac.compare_digest(supplied, expected):
        logger.warning(
            "Rejected metrics request",
            extra={
                "security_event": True,
                "event_type": "METRICS_ACCESS_DENIED",
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid metrics token")

    return metrics_endpoint()


def create_app() -> FastAPI:
    """
    Build the application.

    Middleware order, outermost first: observability (when enabled), then
    the request size limit.
    """
    app = FastAPI(
        title="API Management Policy Compiler",
        description="Generates, parses and validates gateway policy documents",
        version=__version__,
    )

    app.add_middleware(RequestSizeLimitMiddleware, max_size_mb=settings.max_request_size_mb)
    if settings.observability_enabled:
        app.add_middleware(
            ObservabilityMiddleware,
            request_id_header=settings.observability_request_id_header,
        )

    app.add_exception_handler(PolicyCompilerError, handle_policy_compiler_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)

    for router in (health_router, catalog_router, wizard_router, policies_router):
        app.include_router(router, prefix=API_PREFIX)

    if settings.observability_enabled:
        app.add_route("/metrics", protected_metrics)

    return app


app = create_app()
