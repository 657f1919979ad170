"""HTTP middleware: response hardening and per-request logging."""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ngoconnect.core.config import get_settings
from ngoconnect.core.metrics import observe_http_request
from ngoconnect.core.request_context import new_request_id, request_id_context, sanitize_request_id
from ngoconnect.core.structured_logging import log_json

logger = logging.getLogger(__name__)

REQUEST_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Polled by health checks and scrapers; logged at DEBUG only.
QUIET_PATHS = frozenset({"/api/health", "/api/metrics"})


def _incoming_request_id(request: Request) -> str:
    for header in REQUEST_ID_HEADERS:
        candidate = sanitize_request_id(request.headers.get(header))
        if candidate:
            return candidate
    return new_request_id()


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Harden every response.

    API bodies carry registration documents and donor data, so they are
    never cached by intermediaries.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        headers = response.headers
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Referrer-Policy", "no-referrer")
        if request.url.path.startswith("/api/"):
            headers.setdefault("Cache-Control", "no-store")

        forwarded = request.headers.get("x-forwarded-proto") or request.url.scheme
        if get_settings().environment == "production" and forwarded == "https":
            headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request ID, time the request, and record it in logs and metrics.

    The ID comes from ``X-Request-ID`` (or ``X-Correlation-ID``) when the
    caller sends a usable one and is echoed back in ``X-Request-ID``.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _incoming_request_id(request)
        request.state.request_id = request_id
        path = request.url.path
        fields = {
            "method": request.method,
            "path": path,
            "client_ip": request.client.host if request.client else None,
        }
        started = time.perf_counter()

        with request_id_context(request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                log_json(
                    logger,
                    logging.ERROR,
                    "request_failed",
                    status_code=500,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                    exception=exc.__class__.__name__,
                    error=str(exc),
                    **fields,
                )
                raise

            duration_ms = (time.perf_counter() - started) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            observe_http_request(
                method=request.method,
                route=_route_label(request),
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            log_json(
                logger,
                _level_for(path, response.status_code),
                "request_completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                **fields,
            )
            return response
