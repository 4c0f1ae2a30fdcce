"""
Product API: Request Context Middleware
==========================================

What:  Tags every request with an ID and writes one access log line for it.
How:   The ID is the client's X-Request-ID or a fresh 8-hex-char token. It is
       put in a ContextVar (read by the exception handlers), on
       request.state and in the response header. Once the route has run,
       the line is logged under the matched route template, so all lookups
       of single products share one key and the id travels as a field:

    GET /api/products/{product_id} 404 1.3ms [a1b2c3d4] id=65f1c0c2a8b4e5d6f7a8b9c0

Levels follow the error taxonomy in main.py: client errors and 503
(database not ready yet) are WARNING, other 5xx are ERROR. The health check
is not logged. Request bodies never are.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("product_api.access")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"

# Route names (endpoint function names) kept out of the access log
UNLOGGED_ROUTES = frozenset({"health_check"})


def access_log_level(status: int) -> int:
    if status == 503 or 400 <= status < 500:
        return logging.WARNING
    if status >= 500:
        return logging.ERROR
    return logging.INFO


def route_template(request: Request) -> str:
    """`/api/products/{product_id}` for a matched route, the raw path otherwise."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid

        route = request.scope.get("route")
        if getattr(route, "name", None) in UNLOGGED_ROUTES:
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        template = route_template(request)
        product_id = request.path_params.get("product_id")
        logger.log(
            access_log_level(response.status_code),
            "%s %s %d %.1fms [%s]%s",
            request.method,
            template,
            response.status_code,
            elapsed_ms,
            rid,
            f" id={product_id}" if product_id else "",
            extra={
                "request_id": rid,
                "route": template,
                "product_id": product_id,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response
