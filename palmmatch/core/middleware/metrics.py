from starlette.middleware.base import BaseHTTPMiddleware

from palmmatch.core.metrics import http_requests_total, normalize_path


def _route_label(request) -> str:
    """Route template when the router matched (/v1/matches/{match_id}), else a normalized path."""
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or normalize_path(request.url.path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count every request by method, route and status. Unhandled errors count as 500."""

    async def dispatch(self, request, call_next):
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            http_requests_total.inc(labels={
                "method": request.method.upper(),
                "path": _route_label(request),
                "status": str(status),
            })
