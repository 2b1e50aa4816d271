import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from palmmatch.core.logging import bind_request_id, latency_bucket_ms, log_event

# Health checks and scrapes arrive every few seconds; no log line for those
QUIET_PATHS = frozenset({"/healthz", "/readyz", "/metrics"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the request, echo it back, log completion."""

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid

        start = time.perf_counter()
        with bind_request_id(rid):
            response = await call_next(request)
        latency = latency_bucket_ms((time.perf_counter() - start) * 1000)

        response.headers[self.header_name] = rid
        if request.url.path not in QUIET_PATHS:
            log_event(
                "info",
                "request.complete",
                request_id=rid,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status": response.status_code,
                    "latency_bucket": latency,
                },
            )
        return response
