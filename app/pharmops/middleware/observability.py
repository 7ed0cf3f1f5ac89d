from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.pharmops.core.context import TenantContext
from app.pharmops.core.db_timing import get_db_time_ms, start_db_timer, stop_db_timer
from app.pharmops.core.logging import log_json
from app.pharmops.core.metrics import metrics

logger = logging.getLogger("pharmops.request")


def _tenant_fields(request: Request) -> dict:
    context = getattr(request.state, "context", None)
    if isinstance(context, TenantContext):
        return {
            "user_id": context.user_id,
            "role": context.role,
            "pharmacy_id": context.pharmacy_id,
            "branch_id": context.branch_id,
        }
    return {"user_id": None, "role": None, "pharmacy_id": None, "branch_id": None}


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_time_ms: float | None,
) -> dict:
    scope_route = request.scope.get("route")
    route = getattr(scope_route, "path", None) or request.url.path
    payload = {
        "event": "http_request",
        "trace_id": getattr(request.state, "trace_id", ""),
        **_tenant_fields(request),
        "route": route,
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": round(db_time_ms, 2) if db_time_ms is not None else None,
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
    }
    # set by the manual sweep route so request logs join up with the sweep events
    cleanup = getattr(request.state, "cleanup", None)
    if cleanup is not None:
        payload["cleanup"] = cleanup
    return payload


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        token = start_db_timer()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            db_time_ms = get_db_time_ms()
            stop_db_timer(token)
            payload = build_request_log_payload(
                request=request,
                response=response,
                latency_ms=latency_ms,
                db_time_ms=db_time_ms,
            )
            log_json(logger, payload)
            metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
