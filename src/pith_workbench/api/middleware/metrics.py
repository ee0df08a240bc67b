"""Prometheus metrics middleware for HTTP request instrumentation.

Collects HTTP request metrics:
- Request count by method, endpoint, status code
- Request duration histogram
- In-flight requests gauge
"""

import time
import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from pith_workbench.metrics import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    REQUEST_IN_FLIGHT,
)

logger = structlog.get_logger()

# Collection segment -> placeholder for the dynamic segment that follows it
_DYNAMIC_SEGMENTS = {
    "tables": "{table_name}",
    "models": "{model_id}",
    "preferences": "{key}",
}

# Literal endpoints that share a prefix with a dynamic segment
_STATIC_ENDPOINTS = {
    ("tables", "ingest"),
    ("export", "dump.sql"),
}


def normalize_path(path: str) -> str:
    """
    Normalize path for metrics labels to avoid high cardinality.

    Examples:
        /tables/orders/schema -> /tables/{table_name}/schema
        /ai/models/llama3.2:3b/cached -> /ai/models/{model_id}/cached
        /export/orders.csv -> /export/{table_name}.csv
    """
    parts = path.strip("/").split("/")
    normalized = []

    i = 0
    while i < len(parts):
        part = parts[i]

        if i + 1 < len(parts) and (part, parts[i + 1]) in _STATIC_ENDPOINTS:
            normalized.extend([part, parts[i + 1]])
            i += 2
            continue

        if part in _DYNAMIC_SEGMENTS and i + 1 < len(parts):
            normalized.append(part)
            normalized.append(_DYNAMIC_SEGMENTS[part])
            i += 2
            continue

        if part == "export" and i + 1 < len(parts) and parts[i + 1].endswith(".csv"):
            normalized.append("export")
            normalized.append("{table_name}.csv")
            i += 2
            continue

        normalized.append(part)
        i += 1

    return "/" + "/".join(normalized) if normalized != [""] else "/"


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that collects Prometheus metrics for HTTP requests.

    Metrics collected:
    - pith_requests_total: Counter by method, endpoint, status_code
    - pith_request_duration_seconds: Histogram by method, endpoint
    - pith_requests_in_flight: Gauge by method
    """

    # Endpoints to skip (internal/debug endpoints)
    SKIP_PATHS = {"/metrics", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method

        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        endpoint = normalize_path(request.url.path)

        REQUEST_IN_FLIGHT.labels(method=method).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.perf_counter() - start_time
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)
            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code
            ).inc()
            REQUEST_IN_FLIGHT.labels(method=method).dec()

        return response
