# bakehouse/obs/metrics.py
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter("http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)

# business counters
order_status_transitions_total = Counter(
    "order_status_transitions_total", "Order status writes", ["from_status", "to_status"]
)
capacity_delta_total = Counter(
    "capacity_delta_total", "Capacity ledger deltas applied", ["direction"]
)
capacity_floor_hits_total = Counter(
    "capacity_floor_hits_total", "Decrements floored at zero (historical drift)"
)
order_items_fallback_total = Counter(
    "order_items_fallback_total", "Unparseable order line items counted as 1 unit"
)
prep_sheet_finalized_total = Counter("prep_sheet_finalized_total", "Prep sheets finalized")
production_records_created_total = Counter(
    "production_records_created_total", "Production records created", ["source"]
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        http_requests_total.labels(
            request.method, request.url.path, str(response.status_code)
        ).inc()
        http_request_duration.labels(request.method, request.url.path).observe(elapsed)
        return response
